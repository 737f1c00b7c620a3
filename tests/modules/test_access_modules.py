from __future__ import annotations

from decimal import Decimal

import pytest

from movequote.engine.context import QuoteContext
from movequote.engine.runner import QuoteEngine

ACCESS_MODULES = (
    "distance-calculation",
    "no-elevator-pickup",
    "no-elevator-delivery",
    "navette-required",
    "monte-meubles-recommendation",
    "furniture-lift-cost",
    "floor-penalty-cost",
)


@pytest.fixture
def run(registry, fixed_now):
    engine = QuoteEngine(registry.subset(ACCESS_MODULES))

    def _run(**fields):
        ctx = QuoteContext(input={"service_type": "MOVING", "region": "IDF", **fields}, now=fixed_now)
        return engine.execute(ctx).computed

    return _run


def test_no_elevator_adds_risk_and_flag(run):
    computed = run(pickup_floor=2, delivery_floor=1, delivery_has_elevator=True)
    assert computed.is_activated("no-elevator-pickup")
    assert not computed.is_activated("no-elevator-delivery")
    assert computed.has_flag("NO_ELEVATOR_PICKUP")
    assert computed.risk_score == 15


def test_small_elevator_counts_as_stairs(run):
    computed = run(delivery_floor=4, delivery_has_elevator=True, delivery_elevator_size="SMALL")
    assert computed.is_activated("no-elevator-delivery")
    assert computed.get("lift_recommended") is True


def test_lift_recommended_critical_from_fifth_floor(run):
    computed = run(pickup_floor=5)
    (req,) = computed.requirements
    assert req.code == "FURNITURE_LIFT_RECOMMENDED"
    assert req.severity == "CRITICAL"
    assert [c.amount for c in computed.costs_from("furniture-lift-cost")] == [Decimal("250")]
    assert computed.get("lift_included") is True
    assert not computed.is_activated("floor-penalty-cost")


def test_lift_both_sides_surcharged(run):
    computed = run(pickup_floor=4, delivery_floor=3)
    assert computed.requirements[0].severity == "HIGH"
    assert computed.total_costs() == Decimal("500")


def test_lift_refused_records_legal_impact_and_floor_penalty(run):
    computed = run(pickup_floor=5, refuse_lift_despite_recommendation=True)
    assert [li.code for li in computed.legal_impacts] == ["FURNITURE_LIFT_REFUSED"]
    assert not computed.is_activated("furniture-lift-cost")
    # two floors above the 3rd
    assert [c.amount for c in computed.costs_from("floor-penalty-cost")] == [Decimal("50")]
    assert computed.manual_review_required is False


def test_lift_edge_not_recommended_below_third_floor(run):
    computed = run(pickup_floor=2)
    assert computed.get("lift_recommended") is False
    assert computed.requirements == ()
    assert computed.costs == ()


def test_navette_for_narrow_street(run):
    computed = run(distance=100, delivery_narrow_street=True)
    assert [c.amount for c in computed.costs_from("navette-required")] == [Decimal("70.0")]
    assert computed.has_flag("NAVETTE")


def test_navette_edge_not_needed(run):
    computed = run(distance=100)
    assert not computed.is_activated("navette-required")
