from __future__ import annotations

from decimal import ROUND_CEILING, Decimal

from movequote.engine.context import CostCategory, QuoteContext, Severity
from movequote.engine.module import QuoteModule, register

from .tariffs import CROSS_SELLING

D = Decimal


def _surface(ctx: QuoteContext) -> D:
    return ctx.get_decimal("surface", CROSS_SELLING["DEFAULT_SURFACE_M2"])


def _assembly_cost(ctx: QuoteContext) -> D:
    amount = CROSS_SELLING["ASSEMBLY_BASE"]
    amount += D(ctx.get_int("complex_items", 0)) * CROSS_SELLING["ASSEMBLY_PER_COMPLEX_ITEM"]
    if ctx.flag("bulky_furniture"):
        amount += CROSS_SELLING["ASSEMBLY_PER_BULKY"]
    if ctx.flag("piano"):
        amount += CROSS_SELLING["ASSEMBLY_PIANO"]
    return amount


# -----------------------
# Requirements
# -----------------------


@register
class PackingRequirementModule(QuoteModule):
    id = "packing-requirement"
    priority = 82
    dependencies = ("volume-estimation",)

    def is_applicable(self, ctx: QuoteContext) -> bool:
        volume = ctx.computed.adjusted_volume or D("0")
        return ctx.flag("packing") or volume >= CROSS_SELLING["PACKING_VOLUME_THRESHOLD"]

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        computed = ctx.computed
        volume = computed.adjusted_volume or D("0")
        computed.add_requirement(self.id, "PACKING_RECOMMENDED", Severity.LOW, f"{volume} m3 to pack")
        if not ctx.flag("packing"):
            computed.add_cross_sell(
                self.id, "packing", "Professional packing", volume * CROSS_SELLING["PACKING_PER_M3"], "large volume"
            )
        return ctx


@register
class CleaningEndRequirementModule(QuoteModule):
    id = "cleaning-end-requirement"
    priority = 83

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.flag("cleaning_end") or _surface(ctx) > CROSS_SELLING["CLEANING_SURFACE_THRESHOLD"]

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        surface = _surface(ctx)
        ctx.computed.add_requirement(self.id, "END_CLEANING_RECOMMENDED", Severity.LOW, f"{surface} m2 to hand over")
        if not ctx.flag("cleaning_end"):
            ctx.computed.add_cross_sell(
                self.id, "cleaning_end", "End of tenancy cleaning", surface * CROSS_SELLING["CLEANING_PER_M2"]
            )
        return ctx


# -----------------------
# Costs
# -----------------------


@register
class PackingCostModule(QuoteModule):
    id = "packing-cost"
    priority = 85
    dependencies = ("volume-estimation",)

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.flag("packing")

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        volume = ctx.computed.adjusted_volume or D("0")
        ctx.computed.add_cost(self.id, CostCategory.SERVICE, "Packing", volume * CROSS_SELLING["PACKING_PER_M3"])
        return ctx


@register
class CleaningEndCostModule(QuoteModule):
    id = "cleaning-end-cost"
    priority = 86

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.flag("cleaning_end")

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        surface = _surface(ctx)
        ctx.computed.add_cost(
            self.id, CostCategory.SERVICE, "End cleaning", surface * CROSS_SELLING["CLEANING_PER_M2"], surface=surface
        )
        return ctx


@register
class DismantlingCostModule(QuoteModule):
    id = "dismantling-cost"
    priority = 87

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.flag("dismantling")

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        ctx.computed.add_cost(self.id, CostCategory.SERVICE, "Furniture dismantling", _assembly_cost(ctx))
        return ctx


@register
class ReassemblyCostModule(QuoteModule):
    id = "reassembly-cost"
    priority = 88

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.flag("reassembly")

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        ctx.computed.add_cost(self.id, CostCategory.SERVICE, "Furniture reassembly", _assembly_cost(ctx))
        return ctx


@register
class StorageCostModule(QuoteModule):
    id = "storage-cost"
    priority = 89
    dependencies = ("volume-estimation",)

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.flag("temporary_storage")

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        volume = ctx.computed.adjusted_volume or D("0")
        days = ctx.get_int("storage_duration_days", CROSS_SELLING["STORAGE_DEFAULT_DAYS"])
        months = (D(days) / D(CROSS_SELLING["DAYS_PER_MONTH"])).to_integral_value(rounding=ROUND_CEILING)
        months = max(months, D("1"))
        ctx.computed.add_cost(
            self.id,
            CostCategory.STORAGE,
            f"Storage {months} month(s)",
            volume * months * CROSS_SELLING["STORAGE_PER_M3_PER_MONTH"],
            months=months,
        )
        return ctx


@register
class SuppliesCostModule(QuoteModule):
    """Client-selected supplies are charged as selected; forced supplies are estimated from volume."""

    id = "supplies-cost"
    priority = 90
    dependencies = ("volume-estimation",)

    def is_applicable(self, ctx: QuoteContext) -> bool:
        selected = ctx.get_decimal("supplies_total", D("0"))
        return selected > 0 or ctx.flag("force_supplies")

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        selected = ctx.get_decimal("supplies_total", D("0"))
        if selected > 0:
            amount, source = selected, "CLIENT_SELECTION"
        else:
            volume = ctx.computed.adjusted_volume or D("0")
            amount, source = volume * CROSS_SELLING["SUPPLIES_PER_M3"], "VOLUME_ESTIMATE"
        ctx.computed.add_cost(self.id, CostCategory.SUPPLIES, "Packing supplies", amount, source=source)
        return ctx
