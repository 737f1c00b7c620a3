from __future__ import annotations

import hashlib
import json
import secrets
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from itsdangerous import Signer

from movequote.core.logging_config import logger
from movequote.core.settings import get_settings
from movequote.engine.aggregator import q2
from movequote.engine.context import QuoteContext

D = Decimal

SIGNATURE_VERSION = "v1"
CURRENCY = "EUR"

# Reasons (avoid string typos)
REASON_VALID = "VALID"
REASON_SIGNATURE_MISMATCH = "SIGNATURE_MISMATCH"
REASON_EXPIRED = "EXPIRED"
REASON_UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"

ACCESS_CONSTRAINT_FLAGS = ("narrow_street", "parking_authorization")
SERVICE_FLAGS = ("packing", "dismantling", "reassembly", "cleaning_end", "temporary_storage")


def _count(value: Any) -> int:
    if not value:
        return 0
    if isinstance(value, Mapping):
        return sum(1 for v in value.values() if v)
    if isinstance(value, (list, tuple, set)):
        return len(value)
    return 1


@dataclass(frozen=True)
class PriceFingerprint:
    """Compact summary of the priced situation, bound into the signature."""

    service_type: str
    workers: int
    duration: str
    distance: str
    constraints_count: int
    services_count: int

    @staticmethod
    def from_quote_data(data: Mapping[str, Any]) -> "PriceFingerprint":
        return PriceFingerprint(
            service_type=str(data.get("service_type") or "UNKNOWN"),
            workers=int(data.get("workers") or 0),
            duration=str(D(str(data.get("duration") or 0))),
            distance=str(D(str(data.get("distance") or 0))),
            constraints_count=sum(_count(data.get(k)) for k in ("pickup_constraints", "delivery_constraints")),
            services_count=sum(_count(data.get(k)) for k in ("address_services", "global_services")),
        )


def quote_data_from_context(ctx: QuoteContext) -> Dict[str, Any]:
    """Fingerprint source fields of a priced context."""
    computed = ctx.computed

    def constraints(side: str) -> Dict[str, bool]:
        return {flag: ctx.flag(f"{side}_{flag}") for flag in ACCESS_CONSTRAINT_FLAGS}

    return {
        "service_type": ctx.service_type,
        "workers": computed.get("workers_count") if computed else None,
        "duration": computed.get("estimated_hours") if computed else None,
        "distance": computed.distance_km if computed else ctx.get("distance"),
        "pickup_constraints": constraints("pickup"),
        "delivery_constraints": constraints("delivery"),
        "global_services": [s for s in SERVICE_FLAGS if ctx.flag(s)],
    }


@dataclass(frozen=True)
class SecuredPrice:
    total_price: D
    base_price: D
    currency: str
    calculated_at: datetime
    calculation_id: str
    signature: str
    signature_version: str
    fingerprint: PriceFingerprint

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPrice": str(self.total_price),
            "basePrice": str(self.base_price),
            "currency": self.currency,
            "calculatedAt": self.calculated_at.isoformat(),
            "calculationId": self.calculation_id,
            "signature": self.signature,
            "signatureVersion": self.signature_version,
            "fingerprint": asdict(self.fingerprint),
        }


@dataclass(frozen=True)
class SignatureVerificationResult:
    valid: bool
    reason: str
    signature_match: bool
    age_valid: bool
    age_hours: float


def canonical_payload(
    total_price: D,
    base_price: D,
    calculated_at: datetime,
    calculation_id: str,
    fingerprint: PriceFingerprint,
) -> str:
    """Key-sorted JSON; amounts as cent-rounded strings so the bytes never drift."""
    payload = {
        "totalPrice": str(q2(total_price)),
        "basePrice": str(q2(base_price)),
        "calculatedAt": calculated_at.isoformat(),
        "calculationId": calculation_id,
        "fingerprint": asdict(fingerprint),
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


class PriceSignatureService:
    """
    HMAC-SHA256 signatures over a price and the situation it was computed for.

    A price is accepted back only while the signature matches and it is not
    older than max_age_hours.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        max_age_hours: Optional[int] = None,
        salt: str = "movequote-price-v1",
    ):
        settings = get_settings()
        secret = secret or settings.PRICE_SIGNATURE_SECRET
        if secret is None:
            # Prices signed with an ephemeral key do not survive a restart
            secret = secrets.token_hex(32)
            logger.warning("price_signature_secret_missing")
        elif len(secret) < 16:
            raise ValueError("PRICE_SIGNATURE_SECRET must be set (min length 16).")

        self.max_age_hours = max_age_hours if max_age_hours is not None else settings.PRICE_SIGNATURE_MAX_AGE_HOURS
        self._signer = Signer(secret, salt=salt, key_derivation="hmac", digest_method=hashlib.sha256)

    def create(
        self,
        total_price: D,
        base_price: D,
        quote_data: Mapping[str, Any],
        calculated_at: Optional[datetime] = None,
        calculation_id: Optional[str] = None,
    ) -> SecuredPrice:
        calculated_at = calculated_at or datetime.now(timezone.utc)
        calculation_id = calculation_id or str(uuid.uuid4())
        fingerprint = PriceFingerprint.from_quote_data(quote_data)

        canonical = canonical_payload(total_price, base_price, calculated_at, calculation_id, fingerprint)
        signature = self._signer.get_signature(canonical).decode("ascii")

        logger.bind(calculation_id=calculation_id, total_price=str(q2(total_price))).info("price_signed")
        return SecuredPrice(
            total_price=q2(total_price),
            base_price=q2(base_price),
            currency=CURRENCY,
            calculated_at=calculated_at,
            calculation_id=calculation_id,
            signature=signature,
            signature_version=SIGNATURE_VERSION,
            fingerprint=fingerprint,
        )

    def verify(
        self,
        secured: SecuredPrice,
        quote_data: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> SignatureVerificationResult:
        """
        quote_data given -> the fingerprint is recomputed from it, so a price
        presented for a different situation fails like a tampered one.
        """
        now = now or datetime.now(timezone.utc)
        age_hours = (now - secured.calculated_at).total_seconds() / 3600.0
        age_valid = age_hours <= self.max_age_hours

        if secured.signature_version != SIGNATURE_VERSION:
            return self._result(secured, False, REASON_UNSUPPORTED_VERSION, False, age_valid, age_hours)

        fingerprint = (
            PriceFingerprint.from_quote_data(quote_data) if quote_data is not None else secured.fingerprint
        )
        canonical = canonical_payload(
            secured.total_price, secured.base_price, secured.calculated_at, secured.calculation_id, fingerprint
        )
        signature_match = self._signer.verify_signature(canonical, secured.signature)

        if not signature_match:
            return self._result(secured, False, REASON_SIGNATURE_MISMATCH, False, age_valid, age_hours)
        if not age_valid:
            return self._result(secured, False, REASON_EXPIRED, True, False, age_hours)
        return self._result(secured, True, REASON_VALID, True, True, age_hours)

    @staticmethod
    def _result(
        secured: SecuredPrice,
        valid: bool,
        reason: str,
        signature_match: bool,
        age_valid: bool,
        age_hours: float,
    ) -> SignatureVerificationResult:
        if not valid:
            logger.bind(
                calculation_id=secured.calculation_id, reason=reason, age_hours=round(age_hours, 2)
            ).warning("price_signature_rejected")
        return SignatureVerificationResult(
            valid=valid,
            reason=reason,
            signature_match=signature_match,
            age_valid=age_valid,
            age_hours=round(age_hours, 2),
        )
