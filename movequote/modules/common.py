from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from movequote.engine.context import QuoteContext

D = Decimal

SIDES = ("pickup", "delivery")


def round_half_up(x: D) -> int:
    return int(D(x).quantize(D("1"), rounding=ROUND_HALF_UP))


def floor_of(ctx: QuoteContext, side: str) -> int:
    return ctx.get_int(f"{side}_floor", 0) or 0


def has_usable_elevator(ctx: QuoteContext, side: str) -> bool:
    """An elevator counts for furniture only when it is not a SMALL one."""
    if not ctx.flag(f"{side}_has_elevator"):
        return False
    return str(ctx.get(f"{side}_elevator_size", "")).upper() != "SMALL"


def stairs_floor(ctx: QuoteContext, side: str) -> Optional[int]:
    """Floor reached by stairs at `side`, or None when there are no stairs to climb."""
    floor = floor_of(ctx, side)
    if floor <= 0 or has_usable_elevator(ctx, side):
        return None
    return floor
