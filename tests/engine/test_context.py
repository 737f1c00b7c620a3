from __future__ import annotations

import copy
from decimal import Decimal

import pytest

from movequote.engine.context import (
    ENGINE_OWNER,
    ComputedContext,
    CostCategory,
    QuoteContext,
    Severity,
)
from movequote.engine.errors import ScalarOverwriteError


def test_computed_entries_are_read_only_views():
    computed = ComputedContext()
    computed.add_cost("fuel-cost", CostCategory.TRANSPORT, "Fuel", Decimal("20.40"), km=100)
    costs = computed.costs
    assert isinstance(costs, tuple)
    assert costs[0].category == "TRANSPORT"
    assert costs[0].metadata == {"km": 100}
    with pytest.raises(AttributeError):
        costs[0].amount = Decimal("0")


def test_scalar_owner_is_enforced():
    computed = ComputedContext()
    computed.set_scalar("distance_km", Decimal("100"), "distance-calculation")
    # the owner may re-write its own value
    computed.set_scalar("distance_km", Decimal("120"), "distance-calculation")
    assert computed.distance_km == Decimal("120")
    assert computed.owner_of("distance_km") == "distance-calculation"

    with pytest.raises(ScalarOverwriteError):
        computed.set_scalar("distance_km", Decimal("1"), "fuel-cost")


def test_total_costs_excludes_modules():
    computed = ComputedContext()
    computed.add_cost("fuel-cost", CostCategory.TRANSPORT, "Fuel", Decimal("20"))
    computed.add_cost("labor-base", CostCategory.LABOR, "Labor", Decimal("540"))
    assert computed.total_costs() == Decimal("560")
    assert computed.total_costs(exclude_modules=["labor-base"]) == Decimal("20")


def test_checkpoint_rollback_drops_every_write():
    computed = ComputedContext()
    computed.add_cost("a", CostCategory.SERVICE, "A", Decimal("1"))
    cp = computed.checkpoint()

    computed.add_cost("b", CostCategory.SERVICE, "B", Decimal("2"))
    computed.add_risk("b", 10, "risky")
    computed.set_scalar("x", 1, "b")
    computed.note("b", "k", "v")
    computed.mark_activated("b")
    computed.rollback(cp)

    assert [c.module_id for c in computed.costs] == ["a"]
    assert computed.risk_contributions == ()
    assert not computed.has("x")
    assert computed.notes("b") == {}
    assert not computed.is_activated("b")


def test_without_modules_strips_module_output():
    computed = ComputedContext()
    computed.add_cost("fuel-cost", CostCategory.TRANSPORT, "Fuel", Decimal("20"))
    computed.add_cost("labor-base", CostCategory.LABOR, "Labor", Decimal("540"))
    computed.set_scalar("workers_count", 6, "workers-calculation")
    computed.set_scalar("risk_score", 5, ENGINE_OWNER)
    computed.note("workers-calculation", "base_workers", 6)
    computed.mark_activated("fuel-cost")
    computed.mark_activated("workers-calculation")

    stripped = computed.without_modules(["workers-calculation", "labor-base"])

    assert [c.module_id for c in stripped.costs] == ["fuel-cost"]
    assert stripped.activated_modules == ("fuel-cost",)
    assert stripped.workers_count is None
    assert stripped.risk_score == 5
    assert stripped.notes("workers-calculation") == {}
    # source untouched
    assert computed.workers_count == 6
    assert len(computed.costs) == 2


def test_mark_activated_is_idempotent():
    computed = ComputedContext()
    computed.mark_activated("fuel-cost")
    computed.mark_activated("fuel-cost")
    assert computed.activated_modules == ("fuel-cost",)


def test_to_dict_serializes_decimals_and_enums():
    computed = ComputedContext()
    computed.add_requirement("monte-meubles-recommendation", "LIFT", Severity.HIGH, "5th floor")
    computed.set_scalar("adjusted_volume", Decimal("31.50"), "volume-estimation")
    out = computed.to_dict()
    assert out["requirements"][0]["severity"] == "HIGH"
    assert out["fields"]["adjusted_volume"] == "31.50"


def test_quote_context_input_is_read_only(ctx):
    with pytest.raises(TypeError):
        ctx.input["distance"] = 5


def test_quote_context_overrides_produce_new_context(ctx):
    overridden = ctx.with_overrides({"packing": True, "distance": 200})
    assert overridden.get("packing") is True
    assert overridden.get_decimal("distance") == Decimal("200")
    assert ctx.get("packing") is None
    assert ctx.get_decimal("distance") == Decimal("100")


def test_quote_context_accessors(ctx):
    assert ctx.service_type == "MOVING"
    assert ctx.get_int("pickup_floor") == 2
    assert ctx.flag("pickup_has_elevator") is False
    assert ctx.get("missing", "fallback") == "fallback"
    assert ctx.get_decimal("surface") is None


def test_quote_context_deepcopy_is_independent(computed_ctx):
    computed_ctx.computed.add_cost("fuel-cost", CostCategory.TRANSPORT, "Fuel", Decimal("1"))
    clone = copy.deepcopy(computed_ctx)
    clone.computed.add_cost("toll-cost", CostCategory.TRANSPORT, "Tolls", Decimal("1"))
    assert len(computed_ctx.computed.costs) == 1
    assert clone.now == computed_ctx.now
    assert dict(clone.input) == dict(computed_ctx.input)


def test_quote_context_edge_default_now():
    qc = QuoteContext(input={"service_type": "MOVING"})
    assert qc.now.tzinfo is not None
