from __future__ import annotations

from decimal import Decimal

import pytest

from movequote.engine.context import ComputedContext, QuoteContext
from movequote.modules.volume import VolumeEstimationModule, VolumeUncertaintyRiskModule


def _estimate(fixed_now, **fields):
    ctx = QuoteContext(input={"service_type": "MOVING", "region": "IDF", **fields}, now=fixed_now)
    ctx = ctx.with_computed(ComputedContext())
    return VolumeEstimationModule().apply(ctx).computed


def test_volume_user_provided_happy(computed_ctx):
    computed = VolumeEstimationModule().apply(computed_ctx).computed
    assert computed.base_volume == Decimal("30")
    assert computed.adjusted_volume == Decimal("31.50")
    assert computed.notes("volume-estimation")["source"] == "USER_PROVIDED"


def test_volume_from_surface_adds_special_items(fixed_now):
    computed = _estimate(fixed_now, surface=60, housing_type="F3", piano=True)
    # 60 m2 * 0.45 + piano 8, calculated estimate at MEDIUM confidence
    assert computed.base_volume == Decimal("35.00")
    assert computed.adjusted_volume == Decimal("38.50")


def test_volume_user_provided_ignores_special_items(fixed_now):
    computed = _estimate(fixed_now, estimated_volume=20, piano=True, volume_confidence="HIGH")
    assert computed.base_volume == Decimal("20")
    assert computed.adjusted_volume == Decimal("20.40")


def test_volume_edge_defaults_to_two_rooms(fixed_now):
    computed = _estimate(fixed_now)
    assert computed.base_volume == Decimal("20")
    assert computed.adjusted_volume == Decimal("22.00")
    assert computed.notes("volume-estimation")["source"] == "DEFAULT"


@pytest.mark.parametrize("rooms,expected", [(1, "12"), (3, "30"), (9, "60")])
def test_volume_from_room_count(fixed_now, rooms, expected):
    computed = _estimate(fixed_now, rooms=rooms)
    assert computed.base_volume == Decimal(expected)


def test_volume_edge_clamped_to_max(fixed_now):
    computed = _estimate(fixed_now, estimated_volume=500)
    assert computed.base_volume == Decimal("200")
    assert computed.adjusted_volume == Decimal("200.00")


def test_volume_video_high_confidence_has_no_margin(fixed_now):
    computed = _estimate(fixed_now, estimated_volume=25, volume_method="VIDEO", volume_confidence="HIGH")
    assert computed.adjusted_volume == Decimal("25.00")


@pytest.mark.parametrize("confidence,points", [("LOW", 15), ("MEDIUM", 8), ("HIGH", 3)])
def test_volume_uncertainty_risk(fixed_now, confidence, points):
    ctx = QuoteContext(input={"volume_confidence": confidence}, now=fixed_now).with_computed(ComputedContext())
    ctx = VolumeEstimationModule().apply(ctx)
    computed = VolumeUncertaintyRiskModule().apply(ctx).computed
    assert [r.amount for r in computed.risk_contributions] == [points]
