from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from movequote.engine.context import QuoteContext
from movequote.schemas import QuoteRequestV1

D = Decimal

SIDES = ("pickup", "delivery")


def estimate_carry_distance(floor: Optional[int], has_elevator: Optional[bool]) -> D:
    """
    Typical carrying distance (m) between truck and door when the client
    did not give one.
    """
    if not floor or floor <= 0:
        return D("0")
    if has_elevator:
        return D("5")
    if floor <= 2:
        return D("10")
    if floor <= 4:
        return D("20")
    return D("30")


class FormAdapter:
    """Raw client form -> canonical input record / QuoteContext."""

    def to_input_record(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        request = QuoteRequestV1.model_validate(dict(payload))
        record = request.model_dump(exclude_none=True)

        for side in SIDES:
            key = f"{side}_carry_distance"
            if record.get(key) is None:
                record[key] = estimate_carry_distance(
                    record.get(f"{side}_floor"), record.get(f"{side}_has_elevator")
                )
        return record

    def to_quote_context(self, payload: Mapping[str, Any], now: Optional[datetime] = None) -> QuoteContext:
        return QuoteContext(
            input=self.to_input_record(payload),
            now=now or datetime.now(timezone.utc),
        )
