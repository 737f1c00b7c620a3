from __future__ import annotations

from decimal import Decimal

import pytest

from movequote.engine.base_cost import BaseCostEngine
from movequote.engine.config import BASE_COST_MODULES, EngineOptions
from movequote.engine.context import QuoteContext
from movequote.engine.errors import CriticalModuleError, InvalidInputError
from movequote.engine.runner import QuoteEngine


def test_base_cost_happy(registry, ctx):
    result = BaseCostEngine(registry).calculate(ctx)

    # fuel 20.40 + tolls 5.60 + trucks 350 + 80; labor is priced per scenario
    assert result.base_cost == Decimal("456.00")
    assert result.variable_cost == Decimal("540.00")
    assert result.missing_modules == ()

    breakdown = result.breakdown
    assert breakdown["volume"]["adjusted_volume"] == Decimal("31.50")
    assert breakdown["distance"]["is_long_distance"] is True
    assert breakdown["transport"] == {
        "fuel": Decimal("20.40"),
        "tolls": Decimal("5.60"),
        "vehicle": Decimal("430.00"),
    }
    assert breakdown["labor"]["workers"] == 6
    assert breakdown["labor"]["hours"] == Decimal("3")
    assert breakdown["labor"]["cost"] == Decimal("540.00")


def test_base_cost_only_runs_whitelisted_modules(registry, ctx):
    result = BaseCostEngine(registry).calculate(ctx)
    assert set(result.activated_modules) <= set(BASE_COST_MODULES)
    assert "volume-uncertainty-risk" not in result.activated_modules
    assert "no-elevator-pickup" in result.activated_modules


def test_base_cost_context_carries_normalized_fields(registry, ctx):
    computed = BaseCostEngine(registry).calculate(ctx).context.computed
    assert computed.get("departure_address") == "12 rue de la Paix 75002 Paris"
    assert computed.get("departure_postal_code") == "75002"
    assert computed.get("arrival_postal_code") == "78000"
    assert computed.workers_count == 6


def test_base_cost_edge_missing_modules_warns_only(registry, ctx):
    modules = [m for m in registry if m.id != "toll-cost"]
    engine = BaseCostEngine(modules)
    result = engine.calculate(ctx)
    assert result.missing_modules == ("toll-cost",)
    assert result.base_cost == Decimal("450.40")


def test_base_cost_edge_past_date_aborts(registry, sample_input, fixed_now):
    ctx = QuoteContext(input={**sample_input, "moving_date": "2024-12-01"}, now=fixed_now)
    with pytest.raises(CriticalModuleError) as e:
        BaseCostEngine(registry).calculate(ctx)
    assert e.value.module_id == "date-validation"
    assert isinstance(e.value.__cause__, InvalidInputError)


def test_full_run_prices_every_module(registry, ctx):
    out = QuoteEngine(registry).execute(ctx, EngineOptions(margin_rate=Decimal("0.30")))
    computed = out.computed
    assert computed.total_costs() == Decimal("996.00")
    assert computed.final_price == Decimal("1294.80")
    # volume confidence MEDIUM (8) + walk-up pickup (15)
    assert computed.risk_score == 23
    assert computed.manual_review_required is False
