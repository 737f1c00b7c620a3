from __future__ import annotations

from decimal import Decimal

import pytest

from movequote.engine.context import ComputedContext, QuoteContext
from movequote.modules.labor import (
    CrewFlexibilityModule,
    LaborAccessPenaltyModule,
    LaborBaseModule,
    WorkersCalculationModule,
    estimate_hours,
    select_vehicles,
)


def _with_volume(fixed_now, volume="31.50", metadata=None, **fields):
    ctx = QuoteContext(input=fields, now=fixed_now, metadata=metadata or {})
    ctx = ctx.with_computed(ComputedContext())
    ctx.computed.set_scalar("adjusted_volume", Decimal(volume), "volume-estimation")
    return ctx


@pytest.mark.parametrize(
    "volume,expected",
    [
        ("10", ["CAMION_12M3"]),
        ("18", ["CAMION_20M3"]),
        ("31.50", ["CAMION_30M3", "CAMION_12M3"]),
        ("65", ["CAMION_30M3", "CAMION_30M3", "CAMION_12M3"]),
    ],
)
def test_select_vehicles(volume, expected):
    assert select_vehicles(Decimal(volume)) == expected


def test_workers_from_volume(fixed_now):
    computed = WorkersCalculationModule().apply(_with_volume(fixed_now)).computed
    assert computed.workers_count == 6
    assert computed.notes("workers-calculation") == {"base_workers": 6, "scenario_adjustment": None}


def test_workers_eco_capped(fixed_now):
    ctx = _with_volume(fixed_now, metadata={"scenario_id": "ECO"})
    computed = WorkersCalculationModule().apply(ctx).computed
    assert computed.workers_count == 2
    assert computed.notes("workers-calculation")["scenario_adjustment"] == "ECO_MAX_LIMIT"


def test_workers_standard_halved(fixed_now):
    ctx = _with_volume(fixed_now, metadata={"scenario_id": "STANDARD"})
    assert WorkersCalculationModule().apply(ctx).computed.workers_count == 3


def test_workers_edge_small_volume_keeps_one(fixed_now):
    ctx = _with_volume(fixed_now, volume="2", metadata={"scenario_id": "STANDARD"})
    assert WorkersCalculationModule().apply(ctx).computed.workers_count == 1


@pytest.mark.parametrize(
    "workers,floors,hours",
    [(6, 2, "3"), (3, 2, "4.5"), (2, 2, "7"), (2, 0, "4")],
)
def test_estimate_hours(workers, floors, hours):
    assert estimate_hours(Decimal("31.50"), workers, floors) == Decimal(hours)


def test_labor_base_cost(fixed_now):
    ctx = _with_volume(fixed_now, pickup_floor=2, pickup_has_elevator=False)
    ctx.computed.set_scalar("workers_count", 3, "workers-calculation")
    computed = LaborBaseModule().apply(ctx).computed
    (cost,) = computed.costs
    assert cost.amount == Decimal("405.0")
    assert cost.metadata["estimated_hours"] == Decimal("4.5")
    assert computed.get("estimated_hours") == Decimal("4.5")


def test_labor_access_penalty_above_threshold(fixed_now):
    ctx = _with_volume(fixed_now, pickup_carry_distance=45, delivery_carry_distance=10)
    module = LaborAccessPenaltyModule()
    assert module.is_applicable(ctx)
    (cost,) = module.apply(ctx).computed.costs
    assert cost.amount == Decimal("30")


def test_labor_access_penalty_edge_missing_distance_not_estimated(fixed_now):
    ctx = _with_volume(fixed_now, pickup_floor=8)
    assert not LaborAccessPenaltyModule().is_applicable(ctx)
    assert ctx.get("pickup_carry_distance") is None


def test_crew_flexibility(fixed_now):
    module = CrewFlexibilityModule()
    assert not module.is_applicable(_with_volume(fixed_now))
    ctx = _with_volume(fixed_now, crew_flexibility=True)
    assert module.is_applicable(ctx)
    assert module.apply(ctx).computed.total_costs() == Decimal("500")
