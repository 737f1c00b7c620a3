from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict

from .context import ComputedContext

D = Decimal

CENT = D("0.01")


def q2(x: D) -> D:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceResult:
    total_costs: D
    base_price: D
    total_adjustments: D
    final_price: D
    margin_rate: D
    costs_by_category: Dict[str, D] = field(default_factory=dict)
    adjustments_by_type: Dict[str, D] = field(default_factory=dict)


class PriceAggregator:
    """
    Folds costs and adjustments of an output record into a price.

    base_price = sum(costs) * (1 + margin)
    final_price = base_price + sum(adjustments)

    Amounts stay at full precision internally; only the returned figures
    are rounded to cents.
    """

    def compute(self, computed: ComputedContext, margin_rate: D) -> PriceResult:
        margin = D(str(margin_rate))

        total_costs = D("0")
        by_category: Dict[str, D] = {}
        for c in computed.costs:
            total_costs += c.amount
            by_category[c.category] = by_category.get(c.category, D("0")) + c.amount

        total_adjustments = D("0")
        by_type: Dict[str, D] = {}
        for a in computed.adjustments:
            total_adjustments += a.amount
            by_type[a.type] = by_type.get(a.type, D("0")) + a.amount

        base_price = total_costs * (D("1") + margin)
        final_price = base_price + total_adjustments

        return PriceResult(
            total_costs=q2(total_costs),
            base_price=q2(base_price),
            total_adjustments=q2(total_adjustments),
            final_price=q2(final_price),
            margin_rate=margin,
            costs_by_category={k: q2(v) for k, v in by_category.items()},
            adjustments_by_type={k: q2(v) for k, v in by_type.items()},
        )
