from __future__ import annotations

from decimal import ROUND_CEILING, Decimal
from typing import List

from movequote.engine.context import CostCategory, QuoteContext
from movequote.engine.module import QuoteModule, register

from .common import SIDES, round_half_up, stairs_floor
from .tariffs import DEFAULT_VEHICLE_TYPE, LABOR, VEHICLES

D = Decimal


def select_vehicles(volume: D) -> List[str]:
    """Largest trucks first, then the smallest truck that fits the remainder."""
    largest = max(VEHICLES, key=lambda t: VEHICLES[t][0])
    largest_capacity = VEHICLES[largest][0]

    picks: List[str] = []
    remaining = volume
    while remaining > largest_capacity:
        picks.append(largest)
        remaining -= largest_capacity

    for vehicle_type, (capacity, _cost) in sorted(VEHICLES.items(), key=lambda kv: kv[1][0]):
        if remaining <= capacity:
            picks.append(vehicle_type)
            break
    return picks


@register
class VehicleSelectionModule(QuoteModule):
    id = "vehicle-selection"
    priority = 60
    dependencies = ("volume-estimation",)
    requires = ("adjusted_volume",)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        volume = ctx.computed.adjusted_volume
        picks = select_vehicles(volume) if volume > 0 else [DEFAULT_VEHICLE_TYPE]
        amount = sum((VEHICLES[t][1] for t in picks), D("0"))

        ctx.computed.add_cost(
            self.id, CostCategory.VEHICLE, f"Truck rental {' + '.join(picks)}", amount, vehicles=picks
        )
        ctx.computed.set_scalar("vehicle_type", picks[0], self.id)
        ctx.computed.set_scalar("vehicle_count", len(picks), self.id)
        return ctx


@register
class WorkersCalculationModule(QuoteModule):
    """
    Crew size = adjusted volume / 5 m3, rounded half up (default 2).
    Scenario rules: ECO caps the crew at 2, STANDARD halves it.
    """

    id = "workers-calculation"
    priority = 61
    dependencies = ("volume-estimation",)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        computed = ctx.computed
        volume = computed.adjusted_volume
        if volume:
            base_workers = max(1, round_half_up(volume / LABOR["VOLUME_PER_WORKER"]))
        else:
            base_workers = LABOR["DEFAULT_WORKERS"]

        workers = base_workers
        adjustment = None
        scenario_id = ctx.metadata.get("scenario_id")
        if scenario_id == "ECO" and base_workers > LABOR["ECO_MAX_WORKERS"]:
            workers = LABOR["ECO_MAX_WORKERS"]
            adjustment = "ECO_MAX_LIMIT"
        elif scenario_id == "STANDARD":
            workers = max(1, round_half_up(base_workers * LABOR["STANDARD_WORKERS_FACTOR"]))
            adjustment = "STANDARD_FACTOR"

        computed.set_scalar("workers_count", workers, self.id)
        computed.note(self.id, "base_workers", base_workers)
        computed.note(self.id, "scenario_adjustment", adjustment)
        return ctx


def estimate_hours(volume: D, workers: int, stairs_floors: int) -> D:
    """Loading + unloading time, at least MIN_HOURS, rounded up to the half hour."""
    per_m3 = LABOR["MINUTES_PER_M3_PER_WORKER"] + D(stairs_floors) * LABOR["FLOOR_PENALTY_MINUTES"]
    minutes = volume * per_m3 / D(workers)
    hours = max(LABOR["MIN_HOURS"], minutes / D("60"))
    return (hours * 2).to_integral_value(rounding=ROUND_CEILING) / 2


@register
class LaborBaseModule(QuoteModule):
    id = "labor-base"
    priority = 62
    dependencies = ("workers-calculation",)
    requires = ("workers_count",)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        computed = ctx.computed
        workers = computed.workers_count
        volume = computed.adjusted_volume or D("0")
        floors = sum(stairs_floor(ctx, s) or 0 for s in SIDES)

        hours = estimate_hours(volume, workers, floors)
        computed.add_cost(
            self.id,
            CostCategory.LABOR,
            f"Crew {workers} x {hours} h",
            D(workers) * hours * LABOR["HOURLY_RATE"],
            workers=workers,
            estimated_hours=hours,
            hourly_rate=LABOR["HOURLY_RATE"],
        )
        computed.set_scalar("estimated_hours", hours, self.id)
        return ctx


@register
class LaborAccessPenaltyModule(QuoteModule):
    """Carrying distance above 30 m is charged per meter. Never estimates a missing distance."""

    id = "labor-access-penalty"
    priority = 66

    def _extra_meters(self, ctx: QuoteContext) -> D:
        total = D("0")
        for side in SIDES:
            carry = ctx.get_decimal(f"{side}_carry_distance")
            if carry is not None and carry > LABOR["CARRY_THRESHOLD_M"]:
                total += carry - LABOR["CARRY_THRESHOLD_M"]
        return total

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return self._extra_meters(ctx) > 0

    def explain_not_applicable(self, ctx: QuoteContext) -> str:
        return f"carrying distance within {LABOR['CARRY_THRESHOLD_M']} m"

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        meters = self._extra_meters(ctx)
        ctx.computed.add_cost(
            self.id, CostCategory.ACCESS, "Long carry", meters * LABOR["CARRY_PER_METER"], extra_meters=meters
        )
        return ctx


@register
class CrewFlexibilityModule(QuoteModule):
    id = "crew-flexibility"
    description = "Guarantee that the crew stays until the job is done"
    priority = 67
    dependencies = ("workers-calculation",)

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.flag("crew_flexibility")

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        ctx.computed.add_cost(
            self.id, CostCategory.LABOR, "Crew flexibility guarantee", LABOR["FLEXIBILITY_GUARANTEE"]
        )
        return ctx
