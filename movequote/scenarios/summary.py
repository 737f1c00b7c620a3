from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Sequence

from movequote.engine.aggregator import q2

from .multi_quote import QuoteVariant
from .recommendation import Recommendation, ScenarioRecommendationEngine, ScenarioScore

D = Decimal


def _variant_summary(v: QuoteVariant) -> Dict[str, Any]:
    return {"scenario_id": v.scenario_id, "label": v.label, "final_price": v.final_price}


def _scored(v: Optional[QuoteVariant], score: Optional[ScenarioScore], reasons) -> Optional[Dict[str, Any]]:
    if v is None or score is None:
        return None
    out = _variant_summary(v)
    out.update({"score": score.score, "confidence": score.confidence, "reasons": list(reasons)})
    return out


def build_comparison(
    variants: Sequence[QuoteVariant],
    client_input: Mapping[str, Any],
    engine: Optional[ScenarioRecommendationEngine] = None,
) -> Dict[str, Any]:
    """Comparison block returned next to the offers: price extremes plus the recommendation."""
    if not variants:
        raise ValueError("No variants to compare")

    engine = engine or ScenarioRecommendationEngine()
    rec: Recommendation = engine.analyze(client_input)
    by_id = {v.scenario_id: v for v in variants}

    cheapest = min(variants, key=lambda v: v.final_price)
    most_expensive = max(variants, key=lambda v: v.final_price)
    total = sum((v.final_price for v in variants), D("0"))

    alternative = None
    if rec.alternative is not None:
        alternative = _scored(by_id.get(rec.alternative.scenario_id), rec.alternative, rec.alternative_reasons)

    return {
        "cheapest": _variant_summary(cheapest),
        "most_expensive": _variant_summary(most_expensive),
        "recommended": _scored(by_id.get(rec.recommended.scenario_id), rec.recommended, rec.primary_reasons),
        "alternative": alternative,
        "price_range": {
            "min": cheapest.final_price,
            "max": most_expensive.final_price,
            "spread": q2(most_expensive.final_price - cheapest.final_price),
        },
        "average_price": q2(total / D(len(variants))),
        "recommendation": {
            "scenario_id": rec.recommended.scenario_id,
            "client_phrase": rec.recommended.client_phrase,
            "confidence": rec.recommended.confidence,
        },
        "scores": {s.scenario_id: s.score for s in rec.scores},
    }
