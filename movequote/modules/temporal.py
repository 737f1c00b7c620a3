from __future__ import annotations

from movequote.engine.context import QuoteContext
from movequote.engine.module import QuoteModule, register

from .tariffs import TEMPORAL


@register
class EndOfMonthModule(QuoteModule):
    id = "end-of-month"
    priority = 80
    dependencies = ("date-validation",)

    def is_applicable(self, ctx: QuoteContext) -> bool:
        moving_date = ctx.computed.get("moving_date")
        return moving_date is not None and moving_date.day >= TEMPORAL["END_OF_MONTH_DAY"]

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        computed = ctx.computed
        computed.add_adjustment(
            self.id,
            "End of month surcharge",
            computed.total_costs() * TEMPORAL["END_OF_MONTH_RATE"],
            reason="high demand at month end",
        )
        computed.add_risk(self.id, TEMPORAL["END_OF_MONTH_RISK"], "End of month peak")
        return ctx


@register
class WeekendSurchargeModule(QuoteModule):
    id = "weekend"
    priority = 81
    dependencies = ("date-validation",)

    def is_applicable(self, ctx: QuoteContext) -> bool:
        moving_date = ctx.computed.get("moving_date")
        return moving_date is not None and moving_date.weekday() >= 5

    def explain_not_applicable(self, ctx: QuoteContext) -> str:
        return "weekday move"

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        computed = ctx.computed
        computed.add_adjustment(
            self.id,
            "Weekend surcharge",
            computed.total_costs() * TEMPORAL["WEEKEND_RATE"],
            reason="move on a weekend",
        )
        computed.add_risk(self.id, TEMPORAL["WEEKEND_RISK"], "Weekend move")
        return ctx
