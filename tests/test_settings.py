from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from movequote.core.settings import Settings, get_settings
from movequote.engine.config import EngineOptions
from movequote.engine.context import QuoteContext
from movequote.engine.runner import QuoteEngine


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("DEFAULT_MARGIN_RATE", raising=False)
    settings = Settings(_env_file=None)
    assert settings.DEFAULT_MARGIN_RATE == 0.30
    assert settings.STRICT_MODULE_REGISTRY is True
    assert settings.PRICE_SIGNATURE_MAX_AGE_HOURS == 24


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("DEFAULT_MARGIN_RATE", "0.25")
    monkeypatch.setenv("strict_module_registry", "false")
    settings = Settings(_env_file=None)
    assert settings.DEFAULT_MARGIN_RATE == 0.25
    assert settings.STRICT_MODULE_REGISTRY is False


def test_settings_edge_margin_out_of_range(monkeypatch):
    monkeypatch.setenv("DEFAULT_MARGIN_RATE", "1.5")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_engine_uses_configured_margin(monkeypatch, fixed_now):
    monkeypatch.setenv("DEFAULT_MARGIN_RATE", "0.10")
    get_settings.cache_clear()
    try:
        out = QuoteEngine([]).execute(QuoteContext(input={"service_type": "MOVING"}, now=fixed_now))
        assert out.computed.margin_rate == Decimal("0.1")
        explicit = QuoteEngine([]).execute(
            QuoteContext(input={}, now=fixed_now), EngineOptions(margin_rate=Decimal("0.5"))
        )
        assert explicit.computed.margin_rate == Decimal("0.5")
    finally:
        get_settings.cache_clear()
