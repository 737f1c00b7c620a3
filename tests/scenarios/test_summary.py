from __future__ import annotations

from decimal import Decimal

import pytest

from movequote.engine.context import ComputedContext
from movequote.scenarios.multi_quote import MultiQuoteService
from movequote.scenarios.summary import build_comparison


@pytest.fixture
def variants(ctx):
    return MultiQuoteService([]).generate_multiple_quotes(ctx.with_computed(ComputedContext()), Decimal("500"))


def test_comparison_happy(variants):
    client = {"estimated_volume": 10, "distance": 20, "volume_method": "FORM", "volume_confidence": "HIGH"}
    out = build_comparison(variants, client)

    assert out["cheapest"] == {"scenario_id": "ECO", "label": "Économique", "final_price": Decimal("600.00")}
    assert out["most_expensive"]["scenario_id"] == "PREMIUM"
    assert out["price_range"] == {"min": Decimal("600.00"), "max": Decimal("700.00"), "spread": Decimal("100.00")}
    # (600 + 650 + 675 + 660 + 700 + 690) / 6
    assert out["average_price"] == Decimal("662.50")

    assert out["recommended"]["scenario_id"] == "ECO"
    assert out["recommended"]["score"] == 95
    assert out["recommendation"]["confidence"] == "HIGH"
    assert out["recommendation"]["client_phrase"]
    assert out["alternative"] is None
    assert set(out["scores"]) == {v.scenario_id for v in variants}


def test_comparison_alternative_included(variants):
    client = {
        "estimated_volume": 40,
        "distance": 100,
        "pickup_floor": 5,
        "piano": True,
        "artwork": True,
    }
    out = build_comparison(variants, client)
    assert out["recommended"]["scenario_id"] == "SECURITY_PLUS"
    assert out["alternative"]["scenario_id"] == "CONFORT"
    assert out["alternative"]["final_price"] == Decimal("675.00")


def test_comparison_edge_recommended_scenario_not_offered(variants):
    offered = [v for v in variants if v.scenario_id != "ECO"]
    out = build_comparison(offered, {"estimated_volume": 10, "distance": 20})
    assert out["recommended"] is None
    assert out["recommendation"]["scenario_id"] == "ECO"


def test_comparison_edge_no_variants():
    with pytest.raises(ValueError):
        build_comparison([], {})
