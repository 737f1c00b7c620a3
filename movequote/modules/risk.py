from __future__ import annotations

from decimal import Decimal

from movequote.engine.context import CostCategory, QuoteContext, Severity
from movequote.engine.errors import InvalidInputError
from movequote.engine.module import QuoteModule, register

from .tariffs import HIGH_VALUE, INSURANCE

D = Decimal

HIGH_VALUE_ITEMS = ("piano", "safe", "artwork")


@register
class DeclaredValueValidationModule(QuoteModule):
    id = "declared-value-validation"
    priority = 70

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.get("declared_value") is not None or ctx.flag("declared_value_insurance")

    def explain_not_applicable(self, ctx: QuoteContext) -> str:
        return "no declared value and no insurance requested"

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        computed = ctx.computed
        value = ctx.get_decimal("declared_value", D("0"))
        if value < 0:
            raise InvalidInputError("NEGATIVE_DECLARED_VALUE", "declared_value must be >= 0")

        if ctx.flag("declared_value_insurance") and value == 0:
            computed.add_legal_impact(
                self.id,
                "INSURANCE_WITHOUT_DECLARED_VALUE",
                Severity.MEDIUM,
                "Value insurance requested without a declared value; standard liability applies",
            )
        if value >= HIGH_VALUE["HIGH_DECLARED_VALUE"]:
            computed.add_insurance_note(
                self.id, "HIGH_DECLARED_VALUE", f"Declared value {value} EUR requires an inventory"
            )

        computed.set_scalar("insured_value", value, self.id)
        return ctx


@register
class InsurancePremiumModule(QuoteModule):
    id = "insurance-premium"
    priority = 71
    dependencies = ("declared-value-validation",)

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.flag("declared_value_insurance") and ctx.computed.get("insured_value", D("0")) > 0

    def explain_not_applicable(self, ctx: QuoteContext) -> str:
        return "value insurance not requested"

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        value = ctx.computed.get("insured_value")
        premium = max(INSURANCE["MIN_PREMIUM"], value * INSURANCE["PREMIUM_RATE"])
        ctx.computed.add_cost(self.id, CostCategory.INSURANCE, "Declared value insurance", premium, insured_value=value)
        ctx.computed.add_insurance_note(self.id, "VALUE_INSURANCE", f"Goods insured up to {value} EUR")
        return ctx


@register
class HighValueItemHandlingModule(QuoteModule):
    id = "high-value-item-handling"
    priority = 73

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return any(ctx.flag(item) for item in HIGH_VALUE_ITEMS)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        computed = ctx.computed
        items = [item for item in HIGH_VALUE_ITEMS if ctx.flag(item)]
        for item in items:
            computed.add_cost(self.id, CostCategory.HANDLING, f"Specialised handling: {item}", HIGH_VALUE["HANDLING"][item])
        computed.add_risk(self.id, HIGH_VALUE["RISK"], f"High value items: {', '.join(items)}")
        computed.add_requirement(self.id, "SPECIALISED_HANDLING", Severity.MEDIUM, ", ".join(items))
        return ctx
