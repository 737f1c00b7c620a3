from __future__ import annotations

from decimal import Decimal

from movequote.engine.context import CostCategory, QuoteContext, Severity
from movequote.engine.module import QuoteModule, register

from .common import SIDES, stairs_floor
from .tariffs import ACCESS, FURNITURE_LIFT, LABOR, LOGISTICS

D = Decimal


class _NoElevatorModule(QuoteModule):
    side = "pickup"

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return stairs_floor(ctx, self.side) is not None

    def explain_not_applicable(self, ctx: QuoteContext) -> str:
        return f"{self.side}: ground floor or usable elevator"

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        floor = stairs_floor(ctx, self.side)
        ctx.computed.add_risk(self.id, ACCESS["NO_ELEVATOR_RISK"], f"{self.side}: floor {floor} by stairs")
        ctx.computed.add_flag(self.id, f"NO_ELEVATOR_{self.side.upper()}", f"Floor {floor} without elevator")
        return ctx


@register
class NoElevatorPickupModule(_NoElevatorModule):
    id = "no-elevator-pickup"
    priority = 40
    side = "pickup"


@register
class NoElevatorDeliveryModule(_NoElevatorModule):
    id = "no-elevator-delivery"
    priority = 41
    side = "delivery"


@register
class NavetteRequiredModule(QuoteModule):
    id = "navette-required"
    description = "Shuttle van when the truck cannot reach the door"
    priority = 45
    requires = ("distance_km",)

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.flag("navette_required") or any(ctx.flag(f"{s}_narrow_street") for s in SIDES)

    def explain_not_applicable(self, ctx: QuoteContext) -> str:
        return "street accessible to the truck at both addresses"

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        km = ctx.computed.distance_km
        ctx.computed.add_cost(
            self.id,
            CostCategory.ACCESS,
            "Shuttle van",
            LOGISTICS["NAVETTE_BASE"] + km * LOGISTICS["NAVETTE_PER_KM"],
        )
        ctx.computed.add_flag(self.id, "NAVETTE", "Shuttle van between truck and door")
        return ctx


@register
class MonteMeublesRecommendationModule(QuoteModule):
    """
    Recommends a furniture lift from the 3rd floor by stairs (critical from
    the 5th). A client refusal is recorded as a legal impact; the lift cost
    is then not charged and floor penalties apply instead.
    """

    id = "monte-meubles-recommendation"
    priority = 50

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        computed = ctx.computed
        sides = []
        highest = 0
        for side in SIDES:
            floor = stairs_floor(ctx, side)
            if floor is not None and floor >= FURNITURE_LIFT["HIGH_FLOOR"]:
                sides.append(side)
                highest = max(highest, floor)

        recommended = bool(sides)
        computed.set_scalar("lift_recommended", recommended, self.id)
        computed.note(self.id, "sides", sides)
        if not recommended:
            return ctx

        severity = Severity.CRITICAL if highest >= FURNITURE_LIFT["CRITICAL_FLOOR"] else Severity.HIGH
        computed.add_requirement(
            self.id, "FURNITURE_LIFT_RECOMMENDED", severity, f"Floor {highest} without usable elevator"
        )
        if ctx.flag("refuse_lift_despite_recommendation"):
            computed.add_legal_impact(
                self.id,
                "FURNITURE_LIFT_REFUSED",
                Severity.HIGH,
                "Client refused the recommended furniture lift; handling damage is at client's risk",
            )
        return ctx


@register
class FurnitureLiftCostModule(QuoteModule):
    id = "furniture-lift-cost"
    priority = 53
    dependencies = ("monte-meubles-recommendation",)

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return bool(ctx.computed.get("lift_recommended")) and not ctx.flag(
            "refuse_lift_despite_recommendation"
        )

    def explain_not_applicable(self, ctx: QuoteContext) -> str:
        if ctx.flag("refuse_lift_despite_recommendation"):
            return "furniture lift refused by client"
        return "no furniture lift recommended"

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        sides = ctx.computed.notes("monte-meubles-recommendation").get("sides", [])
        amount = FURNITURE_LIFT["BASE_COST"]
        if len(sides) > 1:
            amount += FURNITURE_LIFT["DOUBLE_SURCHARGE"]
        ctx.computed.add_cost(self.id, CostCategory.LIFT, "Furniture lift", amount, sides=list(sides))
        ctx.computed.set_scalar("lift_included", True, self.id)
        return ctx


@register
class FloorPenaltyCostModule(QuoteModule):
    id = "floor-penalty-cost"
    description = "Stairs surcharge per floor above the threshold, unless a lift is booked"
    priority = 54
    dependencies = ("monte-meubles-recommendation",)

    def _extra_floors(self, ctx: QuoteContext) -> int:
        total = 0
        for side in SIDES:
            floor = stairs_floor(ctx, side)
            if floor is not None and floor > LABOR["STAIRS_FLOOR_THRESHOLD"]:
                total += floor - LABOR["STAIRS_FLOOR_THRESHOLD"]
        return total

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return not ctx.computed.get("lift_included", False) and self._extra_floors(ctx) > 0

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        floors = self._extra_floors(ctx)
        ctx.computed.add_cost(
            self.id, CostCategory.ACCESS, "Stairs surcharge", LABOR["STAIRS_PER_FLOOR"] * floors, floors=floors
        )
        return ctx
