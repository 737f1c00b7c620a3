from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from movequote.engine.context import QuoteContext
from movequote.engine.errors import InvalidInputError
from movequote.engine.module import QuoteModule, register

REQUIRED_FIELDS = ("service_type", "region")

NON_NEGATIVE_FIELDS = (
    "estimated_volume",
    "surface",
    "distance",
    "declared_value",
    "pickup_carry_distance",
    "delivery_carry_distance",
    "storage_duration_days",
)

_WS = re.compile(r"\s+")
_POSTCODE = re.compile(r"\b(\d{5})\b")


@register
class InputSanitizationModule(QuoteModule):
    id = "input-sanitization"
    description = "Rejects records missing mandatory fields or carrying negative quantities"
    priority = 10

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        missing = [f for f in REQUIRED_FIELDS if not ctx.get(f)]
        if missing:
            raise InvalidInputError("MISSING_FIELDS", f"Mandatory fields missing: {missing}")

        for name in NON_NEGATIVE_FIELDS:
            value = ctx.get_decimal(name)
            if value is not None and value < 0:
                raise InvalidInputError("NEGATIVE_VALUE", f"{name} must be >= 0", {"field": name})

        for side in ("pickup", "delivery"):
            floor = ctx.get_int(f"{side}_floor")
            if floor is not None and not -3 <= floor <= 60:
                raise InvalidInputError("FLOOR_OUT_OF_RANGE", f"{side}_floor out of range: {floor}")

        ctx.computed.set_scalar("service_type", ctx.service_type.upper(), self.id)
        return ctx


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


@register
class DateValidationModule(QuoteModule):
    id = "date-validation"
    description = "Parses the moving date and rejects dates in the past"
    priority = 11

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.get("moving_date") is not None

    def explain_not_applicable(self, ctx: QuoteContext) -> str:
        return "no moving date provided"

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        try:
            moving_date = _parse_date(ctx["moving_date"])
        except ValueError as e:
            raise InvalidInputError("INVALID_DATE", f"Unparsable moving date: {ctx['moving_date']!r}") from e

        if moving_date < ctx.now.date():
            raise InvalidInputError("DATE_IN_PAST", f"Moving date {moving_date.isoformat()} is in the past")

        ctx.computed.set_scalar("moving_date", moving_date, self.id)
        ctx.computed.note(self.id, "days_ahead", (moving_date - ctx.now.date()).days)
        return ctx


def normalize_address(value: Any) -> str:
    return _WS.sub(" ", str(value or "")).strip()


@register
class AddressNormalizationModule(QuoteModule):
    id = "address-normalization"
    description = "Collapses whitespace in addresses and extracts postal codes"
    priority = 12

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        computed = ctx.computed
        for side, key in (("departure", "departure_address"), ("arrival", "arrival_address")):
            address = normalize_address(ctx.get(key))
            computed.set_scalar(key, address, self.id)
            match = _POSTCODE.search(address)
            if match:
                computed.set_scalar(f"{side}_postal_code", match.group(1), self.id)
        return ctx
