from __future__ import annotations

from decimal import Decimal

from movequote.engine.context import CostCategory, QuoteContext
from movequote.engine.module import QuoteModule, register

from .tariffs import DISTANCE, FUEL, LABOR, LOGISTICS, TOLLS

D = Decimal


@register
class DistanceCalculationModule(QuoteModule):
    id = "distance-calculation"
    description = "Resolves the route distance (default when unknown)"
    priority = 30

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        km = ctx.get_decimal("distance")
        defaulted = km is None
        if defaulted:
            km = DISTANCE["DEFAULT_KM"]
        km = min(km, DISTANCE["MAX_KM"])

        ctx.computed.set_scalar("distance_km", km, self.id)
        ctx.computed.note(self.id, "defaulted", defaulted)
        return ctx


@register
class LongDistanceThresholdModule(QuoteModule):
    id = "long-distance-threshold"
    priority = 31
    requires = ("distance_km",)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        km = ctx.computed.distance_km
        ctx.computed.set_scalar("is_long_distance", km > DISTANCE["LONG_DISTANCE_THRESHOLD_KM"], self.id)
        return ctx


@register
class FuelCostModule(QuoteModule):
    id = "fuel-cost"
    priority = 33
    requires = ("distance_km",)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        km = ctx.computed.distance_km
        liters = km * FUEL["CONSUMPTION_L_PER_100KM"] / D("100")
        ctx.computed.add_cost(
            self.id,
            CostCategory.TRANSPORT,
            "Fuel",
            liters * FUEL["PRICE_PER_LITER"],
            liters=liters,
            distance_km=km,
        )
        return ctx


@register
class TollCostModule(QuoteModule):
    id = "toll-cost"
    priority = 35
    dependencies = ("long-distance-threshold",)
    requires = ("distance_km",)

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return bool(ctx.computed.get("is_long_distance"))

    def explain_not_applicable(self, ctx: QuoteContext) -> str:
        return "short distance, no motorway tolls"

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        km = ctx.computed.distance_km
        ctx.computed.add_cost(
            self.id,
            CostCategory.TRANSPORT,
            "Tolls",
            km * TOLLS["HIGHWAY_SHARE"] * TOLLS["COST_PER_KM"],
            highway_km=km * TOLLS["HIGHWAY_SHARE"],
        )
        return ctx


@register
class OvernightStopCostModule(QuoteModule):
    id = "overnight-stop-cost"
    description = "Hotel, meals and secure parking when the route needs a night stop"
    priority = 68
    dependencies = ("distance-calculation", "workers-calculation")

    def is_applicable(self, ctx: QuoteContext) -> bool:
        km = ctx.computed.distance_km or D("0")
        return km > DISTANCE["OVERNIGHT_STOP_THRESHOLD_KM"] or ctx.flag("force_overnight_stop")

    def explain_not_applicable(self, ctx: QuoteContext) -> str:
        return f"distance below {DISTANCE['OVERNIGHT_STOP_THRESHOLD_KM']} km"

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        workers = ctx.computed.get("workers_count", LABOR["DEFAULT_WORKERS"])
        per_worker = LOGISTICS["HOTEL_PER_WORKER"] + LOGISTICS["MEAL_PER_WORKER"]
        ctx.computed.add_cost(
            self.id,
            CostCategory.TRANSPORT,
            "Overnight stop",
            per_worker * workers + LOGISTICS["SECURE_PARKING"],
            workers=workers,
        )
        ctx.computed.add_flag(self.id, "OVERNIGHT_STOP", "Route requires a night stop")
        return ctx
