from __future__ import annotations

from decimal import Decimal

import pytest

from movequote.engine.base_cost import BaseCostEngine
from movequote.engine.context import (
    DECISION_APPLIED,
    DECISION_SKIPPED,
    ENGINE_OWNER,
    ComputedContext,
    CostCategory,
    QuoteContext,
    Severity,
    TraceEntry,
)
from movequote.scenarios.catalogue import get_scenario
from movequote.scenarios.multi_quote import MultiQuoteService
from movequote.scenarios.output import (
    contract_data,
    field_checklist,
    format_quote,
    legal_audit,
    quote_documents,
)


@pytest.fixture
def priced(sample_input, fixed_now):
    computed = ComputedContext()
    computed.add_cost("vehicle-selection", CostCategory.VEHICLE, "Truck rental 20m3 + 12m3", Decimal("250"),
                      vehicles=["20m3", "12m3"])
    computed.add_cost("fuel-cost", CostCategory.TRANSPORT, "Fuel", Decimal("40.333"))
    computed.add_cost("insurance-premium", CostCategory.INSURANCE, "Declared value insurance", Decimal("100"))
    computed.add_adjustment("weekend-surcharge", "Weekend", Decimal("25"), reason="Saturday")
    computed.add_risk("no-elevator-pickup", 15, "pickup: floor 4 by stairs")
    computed.add_requirement("monte-meubles-recommendation", "FURNITURE_LIFT_RECOMMENDED", Severity.HIGH, "Floor 4")
    computed.add_requirement("packing-recommendation", "PACKING_RECOMMENDED", Severity.LOW, "30 m3 to pack")
    computed.add_legal_impact("monte-meubles-recommendation", "FURNITURE_LIFT_REFUSED", Severity.HIGH, "Refused")
    computed.add_insurance_note("insurance-premium", "VALUE_INSURANCE", "Goods insured up to 20000 EUR")
    computed.add_flag("no-elevator-pickup", "NO_ELEVATOR_PICKUP", "Floor 4 without elevator")
    computed.add_flag("declared-value-validation", "INSURANCE_REVIEW", "Check the inventory")
    for module_id in ("vehicle-selection", "fuel-cost", "no-elevator-pickup", "monte-meubles-recommendation"):
        computed.mark_activated(module_id)
        computed.record(TraceEntry(module_id, DECISION_APPLIED))
    computed.record(TraceEntry("navette-required", DECISION_SKIPPED, "NOT_APPLICABLE", "street accessible"))
    computed.set_scalar("vehicle_count", 2, "vehicle-selection")
    computed.set_scalar("workers_count", 3, "workers-calculation")
    computed.set_scalar("estimated_hours", Decimal("4.5"), "estimate-hours")
    computed.set_scalar("margin_rate", Decimal("0.3"), ENGINE_OWNER)
    computed.set_scalar("base_price", Decimal("507.43"), ENGINE_OWNER)
    computed.set_scalar("final_price", Decimal("532.43"), ENGINE_OWNER)
    computed.set_scalar("risk_score", 15, ENGINE_OWNER)

    ctx = QuoteContext(input={**sample_input, "declared_value": 20000}, now=fixed_now)
    return ctx.with_computed(computed)


def test_format_quote_happy(priced):
    out = format_quote(priced, quote_id="Q-1")
    pricing = out["pricing"]

    assert out["quote_id"] == "Q-1"
    assert out["generated_at"] == "2025-01-01T12:00:00+00:00"
    assert out["moving_date"] == "2025-02-12"
    assert pricing["total_costs"] == Decimal("390.33")
    assert pricing["final_price"] == Decimal("532.43")
    assert pricing["costs_by_category"] == {
        "VEHICLE": Decimal("250.00"),
        "TRANSPORT": Decimal("40.33"),
        "INSURANCE": Decimal("100.00"),
    }
    assert [c["module_id"] for c in pricing["costs_by_module"]] == [
        "vehicle-selection", "fuel-cost", "insurance-premium"
    ]
    assert pricing["adjustments"][0]["amount"] == Decimal("25.00")


def test_format_quote_logistics_and_risk(priced):
    out = format_quote(priced)
    assert out["logistics"]["vehicle_types"] == ["20m3", "12m3"]
    assert out["logistics"]["vehicle_count"] == 2
    assert out["logistics"]["workers_count"] == 3
    assert out["logistics"]["estimated_duration_hours"] == Decimal("4.5")
    assert out["risk"]["risk_score"] == 15
    assert out["risk"]["manual_review_required"] is False
    assert out["traceability"]["operational_flags"] == ["NO_ELEVATOR_PICKUP", "INSURANCE_REVIEW"]


def test_field_checklist_marks_high_severity_required(priced):
    out = field_checklist(priced)
    items = out["items"]
    assert [i["id"] for i in items] == ["req-1", "req-2"]
    assert [i["required"] for i in items] == [True, False]
    assert items[0]["description"] == "Floor 4"


def test_contract_data_insurance(priced):
    out = contract_data(priced)
    assert out["insurance"]["declared_value"] == Decimal("20000")
    assert out["insurance"]["coverage"] == Decimal("20000")
    assert out["insurance"]["premium"] == Decimal("100.00")
    assert out["insurance"]["notes"] == ["Goods insured up to 20000 EUR"]
    assert [li["code"] for li in out["legal_impacts"]] == ["FURNITURE_LIFT_REFUSED"]
    assert out["operational_constraints"] == ["NO_ELEVATOR_PICKUP", "INSURANCE_REVIEW"]


def test_legal_audit_trail(priced):
    out = legal_audit(priced)
    decisions = out["decisions"]

    impacts = {d["module_id"]: d["impact"] for d in decisions if d["decision"] == DECISION_APPLIED}
    assert impacts == {
        "vehicle-selection": "COST",
        "fuel-cost": "COST",
        "no-elevator-pickup": "RISK",
        "monte-meubles-recommendation": "LEGAL",
    }
    skipped = [d for d in decisions if d["decision"] == DECISION_SKIPPED]
    assert skipped[0]["reason_code"] == "NOT_APPLICABLE"
    assert skipped[0]["impact"] is None
    assert decisions[-1]["decision"] == "FURNITURE_LIFT_REFUSED"
    assert out["legal_flags"] == ["FURNITURE_LIFT_REFUSED", "INSURANCE_REVIEW"]


def test_output_edge_requires_computed(ctx):
    for build in (format_quote, field_checklist, contract_data, legal_audit):
        with pytest.raises(ValueError):
            build(ctx)


def test_documents_for_standard_variant(registry, ctx):
    base = BaseCostEngine(registry).calculate(ctx)
    variant = MultiQuoteService(registry).generate_variant(base.context, base.base_cost, get_scenario("STANDARD"))
    docs = quote_documents(variant.context, quote_id="Q-STD")

    quote = docs["quote"]
    assert quote["pricing"]["total_costs"] == Decimal("1068.50")
    assert quote["pricing"]["base_price"] == variant.base_price
    assert quote["pricing"]["final_price"] == Decimal("1389.05")
    assert quote["logistics"]["workers_count"] == 3
    assert quote["logistics"]["estimated_duration_hours"] == Decimal("4.5")
    assert quote["departure_address"] == "12 rue de la Paix 75002 Paris"
    assert len(docs["checklist"]["items"]) == len(variant.context.computed.requirements)
    assert {d["quote_id"] for d in docs.values()} == {"Q-STD"}
