from __future__ import annotations

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest

from movequote.security.price_signature import (
    REASON_EXPIRED,
    REASON_SIGNATURE_MISMATCH,
    REASON_UNSUPPORTED_VERSION,
    REASON_VALID,
    PriceFingerprint,
    PriceSignatureService,
    canonical_payload,
)

SECRET = "test-secret-0123456789abcdef"


@pytest.fixture
def service():
    return PriceSignatureService(secret=SECRET, max_age_hours=24)


@pytest.fixture
def quote_data():
    return {
        "service_type": "MOVING",
        "workers": 3,
        "duration": Decimal("4.5"),
        "distance": Decimal("100"),
        "pickup_constraints": {"narrow_street": True, "parking_authorization": False},
        "delivery_constraints": {"narrow_street": False, "parking_authorization": False},
        "global_services": ["packing", "dismantling"],
    }


@pytest.fixture
def secured(service, quote_data, fixed_now):
    return service.create(
        Decimal("1389.05"), Decimal("1068.50"), quote_data, calculated_at=fixed_now, calculation_id="calc-1"
    )


def test_sign_and_verify_happy(service, secured, quote_data, fixed_now):
    assert secured.currency == "EUR"
    assert secured.signature_version == "v1"
    assert secured.fingerprint.constraints_count == 1
    assert secured.fingerprint.services_count == 2

    result = service.verify(secured, quote_data=quote_data, now=fixed_now + timedelta(hours=2))
    assert result.valid is True
    assert result.reason == REASON_VALID
    assert result.age_hours == 2.0


def test_verify_edge_tampered_price(service, secured, fixed_now):
    tampered = replace(secured, total_price=Decimal("1.00"))
    result = service.verify(tampered, now=fixed_now)
    assert not result.valid
    assert result.reason == REASON_SIGNATURE_MISMATCH
    assert result.signature_match is False


def test_verify_edge_different_situation(service, secured, quote_data, fixed_now):
    other = {**quote_data, "workers": 2}
    result = service.verify(secured, quote_data=other, now=fixed_now)
    assert result.reason == REASON_SIGNATURE_MISMATCH


def test_verify_edge_expired(service, secured, fixed_now):
    result = service.verify(secured, now=fixed_now + timedelta(hours=25))
    assert not result.valid
    assert result.reason == REASON_EXPIRED
    assert result.signature_match is True
    assert result.age_valid is False


def test_verify_edge_other_secret(secured, fixed_now):
    other = PriceSignatureService(secret="another-secret-0123456789", max_age_hours=24)
    assert other.verify(secured, now=fixed_now).reason == REASON_SIGNATURE_MISMATCH


def test_verify_edge_unsupported_version(service, secured, fixed_now):
    result = service.verify(replace(secured, signature_version="v0"), now=fixed_now)
    assert result.reason == REASON_UNSUPPORTED_VERSION


def test_short_secret_rejected():
    with pytest.raises(ValueError):
        PriceSignatureService(secret="short")


def test_missing_secret_uses_ephemeral_key(quote_data, fixed_now):
    a = PriceSignatureService(max_age_hours=24)
    b = PriceSignatureService(max_age_hours=24)
    secured = a.create(Decimal("100"), Decimal("80"), quote_data, calculated_at=fixed_now)
    assert a.verify(secured, now=fixed_now).valid
    assert not b.verify(secured, now=fixed_now).valid


def test_canonical_payload_is_stable(fixed_now):
    fp = PriceFingerprint.from_quote_data({"service_type": "MOVING", "workers": 2, "distance": 20})
    a = canonical_payload(Decimal("100"), Decimal("80.0"), fixed_now, "id", fp)
    b = canonical_payload(Decimal("100.00"), Decimal("80"), fixed_now, "id", fp)
    assert a == b
    assert '"totalPrice":"100.00"' in a


def test_to_dict(secured):
    d = secured.to_dict()
    assert d["totalPrice"] == "1389.05"
    assert d["calculationId"] == "calc-1"
    assert d["fingerprint"]["workers"] == 3
