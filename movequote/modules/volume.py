from __future__ import annotations

from decimal import Decimal

from movequote.engine.context import QuoteContext
from movequote.engine.module import QuoteModule, register

from .tariffs import RISK, VOLUME

D = Decimal

DEFAULT_HOUSING_TYPE = "F2"


def _clamp(v: D) -> D:
    return max(VOLUME["MIN_M3"], min(VOLUME["MAX_M3"], v))


@register
class VolumeEstimationModule(QuoteModule):
    """
    Base volume: client figure, else surface x housing coefficient, else
    housing type, else room count. Special items are added to computed
    volumes only. The adjusted volume adds a safety margin that depends on
    the estimation method and the client's confidence.
    """

    id = "volume-estimation"
    description = "Estimates base and adjusted volume"
    priority = 20

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        computed = ctx.computed
        method = str(ctx.get("volume_method", "FORM")).upper()
        confidence = str(ctx.get("volume_confidence", "MEDIUM")).upper()
        housing = str(ctx.get("housing_type", "")).upper()

        provided = ctx.get_decimal("estimated_volume")
        surface = ctx.get_decimal("surface")
        rooms = ctx.get_int("rooms")

        if provided is not None and provided > 0:
            base, source = provided, "USER_PROVIDED"
        elif surface and housing in VOLUME["COEFFICIENTS"]:
            base, source = surface * VOLUME["COEFFICIENTS"][housing], "SURFACE"
        elif housing in VOLUME["BASE_BY_TYPE"]:
            base, source = VOLUME["BASE_BY_TYPE"][housing], "HOUSING_TYPE"
        elif rooms:
            base, source = VOLUME["BASE_BY_ROOMS"][max(1, min(rooms, 6))], "ROOMS"
        else:
            base, source = VOLUME["BASE_BY_TYPE"][DEFAULT_HOUSING_TYPE], "DEFAULT"

        special = D("0")
        if source != "USER_PROVIDED":
            for item, extra in VOLUME["SPECIAL_ITEMS"].items():
                if ctx.flag(item):
                    special += extra
        base = _clamp(base + special)

        if method in ("VIDEO", "LIST"):
            margins = VOLUME["CONFIDENCE_MARGINS"][method]
        elif source == "USER_PROVIDED":
            margins = VOLUME["CONFIDENCE_MARGINS"]["FORM_USER_PROVIDED"]
        else:
            margins = VOLUME["CONFIDENCE_MARGINS"]["FORM_CALCULATED"]
        factor = margins.get(confidence, margins["MEDIUM"])

        adjusted = _clamp(base * factor).quantize(D("0.01"))

        computed.set_scalar("base_volume", base, self.id)
        computed.set_scalar("adjusted_volume", adjusted, self.id)
        computed.set_scalar("volume_confidence", confidence, self.id)
        computed.note(self.id, "source", source)
        computed.note(self.id, "safety_factor", factor)
        computed.note(self.id, "special_items_volume", special)
        return ctx


@register
class VolumeUncertaintyRiskModule(QuoteModule):
    id = "volume-uncertainty-risk"
    description = "Adds risk according to how reliable the volume estimate is"
    priority = 24
    dependencies = ("volume-estimation",)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        confidence = ctx.computed.get("volume_confidence", "MEDIUM")
        points = RISK["VOLUME_UNCERTAINTY"].get(confidence, RISK["VOLUME_UNCERTAINTY"]["MEDIUM"])
        ctx.computed.add_risk(self.id, points, f"Volume confidence {confidence}")
        return ctx
