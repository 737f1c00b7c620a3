from __future__ import annotations

from datetime import datetime, timezone

import pytest

import movequote.modules  # noqa: F401 (register all modules)

from movequote.engine.context import ComputedContext, QuoteContext
from movequote.engine.registry import default_registry


@pytest.fixture
def fixed_now():
    return datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_input():
    # Wednesday, 3rd floor walk-up to a ground floor house, 100 km
    return {
        "service_type": "MOVING",
        "region": "IDF",
        "moving_date": "2025-02-12",
        "departure_address": "12  rue de la Paix 75002 Paris",
        "arrival_address": "3 avenue Foch 78000 Versailles",
        "estimated_volume": 30,
        "volume_method": "FORM",
        "volume_confidence": "MEDIUM",
        "distance": 100,
        "pickup_floor": 2,
        "pickup_has_elevator": False,
        "pickup_carry_distance": 10,
        "delivery_floor": 0,
        "delivery_carry_distance": 0,
    }


@pytest.fixture
def ctx(sample_input, fixed_now):
    return QuoteContext(input=sample_input, now=fixed_now)


@pytest.fixture
def computed_ctx(ctx):
    # Minimal ctx for unit-testing modules directly
    return ctx.with_computed(ComputedContext())


@pytest.fixture(scope="session")
def registry():
    return default_registry(strict=True)
