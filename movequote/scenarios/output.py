from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from movequote.engine.aggregator import PriceAggregator, q2
from movequote.engine.context import (
    DECISION_APPLIED,
    ComputedContext,
    CostCategory,
    QuoteContext,
    Severity,
)

D = Decimal

CHECKLIST_TITLE = "Field checklist - move"

# Severities a crew cannot waive on site.
REQUIRED_SEVERITIES = frozenset({Severity.HIGH.value, Severity.CRITICAL.value})

LEGAL_FLAG_MARKERS = ("LEGAL", "LIABILITY", "INSURANCE", "REGULATORY")

# Audit impact kinds
IMPACT_LEGAL = "LEGAL"
IMPACT_RISK = "RISK"
IMPACT_COST = "COST"
IMPACT_OPERATIONAL = "OPERATIONAL"


def _computed(ctx: QuoteContext, what: str) -> ComputedContext:
    if ctx.computed is None:
        raise ValueError(f"Context has no computed record; cannot build the {what}.")
    return ctx.computed


def _iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def _header(ctx: QuoteContext, quote_id: Optional[str]) -> Dict[str, Any]:
    return {"quote_id": quote_id, "generated_at": ctx.now.isoformat()}


def format_quote(ctx: QuoteContext, quote_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Standardized quote document for one priced record.

    Prices are read from the record as the scheduler (or the scenario
    generator) left them; only the breakdown is derived here.
    """
    computed = _computed(ctx, "quote")
    margin = computed.margin_rate if computed.margin_rate is not None else D("0")
    breakdown = PriceAggregator().compute(computed, margin)

    vehicles: List[str] = []
    for cost in computed.costs:
        vehicles.extend(cost.metadata.get("vehicles", ()))

    out = _header(ctx, quote_id)
    out.update(
        {
            "moving_date": _iso(computed.get("moving_date") or ctx.get("moving_date")),
            "departure_address": computed.get("departure_address") or ctx.get("departure_address"),
            "arrival_address": computed.get("arrival_address") or ctx.get("arrival_address"),
            "distance_km": computed.distance_km or D("0"),
            "pricing": {
                "total_costs": breakdown.total_costs,
                "base_price": computed.base_price,
                "final_price": computed.final_price,
                "margin_rate": computed.margin_rate,
                "costs_by_category": breakdown.costs_by_category,
                "costs_by_module": [
                    {"module_id": c.module_id, "label": c.label, "amount": q2(c.amount), "category": c.category}
                    for c in computed.costs
                ],
                "adjustments": [
                    {
                        "module_id": a.module_id,
                        "label": a.label,
                        "amount": q2(a.amount),
                        "type": a.type,
                        "reason": a.reason,
                    }
                    for a in computed.adjustments
                ],
            },
            "logistics": {
                "base_volume": computed.base_volume or D("0"),
                "adjusted_volume": computed.adjusted_volume or D("0"),
                "vehicle_count": computed.get("vehicle_count", 0),
                "vehicle_types": vehicles,
                "workers_count": computed.workers_count or 0,
                "estimated_duration_hours": computed.get("estimated_hours", D("0")),
            },
            "risk": {
                "risk_score": computed.risk_score,
                "manual_review_required": computed.manual_review_required,
                "contributions": [
                    {"module_id": r.module_id, "amount": r.amount, "reason": r.reason}
                    for r in computed.risk_contributions
                ],
            },
            "requirements": [
                {"code": r.code, "severity": r.severity, "reason": r.reason, "module_id": r.module_id}
                for r in computed.requirements
            ],
            "legal_impacts": [
                {"code": li.code, "severity": li.severity, "message": li.message, "module_id": li.module_id}
                for li in computed.legal_impacts
            ],
            "insurance_notes": [n.message for n in computed.insurance_notes],
            "cross_sell_proposals": [
                {
                    "service": p.service,
                    "label": p.label,
                    "reason": p.reason,
                    "estimated_price": q2(p.estimated_price),
                    "module_id": p.module_id,
                }
                for p in computed.cross_sell_proposals
            ],
            "traceability": {
                "activated_modules": list(computed.activated_modules),
                "operational_flags": [f.code for f in computed.operational_flags],
            },
        }
    )
    return out


def field_checklist(ctx: QuoteContext, quote_id: Optional[str] = None) -> Dict[str, Any]:
    """On-site checklist: one item per requirement; HIGH and CRITICAL items are mandatory."""
    computed = _computed(ctx, "field checklist")
    out = _header(ctx, quote_id)
    out["title"] = CHECKLIST_TITLE
    out["items"] = [
        {
            "id": f"req-{i}",
            "code": r.code,
            "severity": r.severity,
            "description": r.reason,
            "required": r.severity in REQUIRED_SEVERITIES,
            "module_id": r.module_id,
        }
        for i, r in enumerate(computed.requirements, start=1)
    ]
    return out


def contract_data(ctx: QuoteContext, quote_id: Optional[str] = None) -> Dict[str, Any]:
    computed = _computed(ctx, "contract data")
    declared = ctx.get_decimal("declared_value", D("0"))
    premium = sum(
        (c.amount for c in computed.costs if c.category == CostCategory.INSURANCE.value), D("0")
    )

    out = _header(ctx, quote_id)
    out.update(
        {
            "legal_impacts": [
                {"code": li.code, "severity": li.severity, "message": li.message, "module_id": li.module_id}
                for li in computed.legal_impacts
            ],
            "insurance": {
                # coverage defaults to the declared value
                "declared_value": declared,
                "premium": q2(premium),
                "coverage": declared,
                "notes": [n.message for n in computed.insurance_notes],
            },
            "operational_constraints": [f.code for f in computed.operational_flags],
        }
    )
    return out


def _impact_of(computed: ComputedContext, module_id: str) -> str:
    if any(li.module_id == module_id for li in computed.legal_impacts):
        return IMPACT_LEGAL
    if any(r.module_id == module_id for r in computed.risk_contributions):
        return IMPACT_RISK
    if computed.costs_from(module_id) or any(a.module_id == module_id for a in computed.adjustments):
        return IMPACT_COST
    return IMPACT_OPERATIONAL


def legal_audit(ctx: QuoteContext, quote_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Audit trail of one run: every scheduler decision in execution order,
    followed by the legal impacts recorded during the run.
    """
    computed = _computed(ctx, "legal audit")

    decisions: List[Dict[str, Any]] = []
    for t in computed.trace:
        decisions.append(
            {
                "module_id": t.module_id,
                "decision": t.decision,
                "reason_code": t.reason_code,
                "reason": t.reason,
                "impact": _impact_of(computed, t.module_id) if t.decision == DECISION_APPLIED else None,
            }
        )
    for li in computed.legal_impacts:
        decisions.append(
            {
                "module_id": li.module_id,
                "decision": li.code,
                "reason_code": li.severity,
                "reason": li.message,
                "impact": IMPACT_LEGAL,
            }
        )

    legal_flags = [li.code for li in computed.legal_impacts]
    legal_flags += [
        f.code for f in computed.operational_flags if any(m in f.code for m in LEGAL_FLAG_MARKERS)
    ]

    out = _header(ctx, quote_id)
    out.update(
        {
            "decisions": decisions,
            "risk_score": computed.risk_score,
            "manual_review_required": computed.manual_review_required,
            "legal_flags": sorted(set(legal_flags)),
        }
    )
    return out


def quote_documents(ctx: QuoteContext, quote_id: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
    return {
        "quote": format_quote(ctx, quote_id),
        "checklist": field_checklist(ctx, quote_id),
        "contract": contract_data(ctx, quote_id),
        "audit": legal_audit(ctx, quote_id),
    }
