from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from movequote.core.logging_config import logger

from .aggregator import q2
from .config import BASE_COST_MODULES, VARIABLE_COST_MODULES, EngineOptions
from .context import QuoteContext
from .module import QuoteModule
from .registry import ModuleRegistry
from .runner import QuoteEngine

D = Decimal

DEFAULT_WORKERS = 2
DEFAULT_HOURS = D("3")


@dataclass(frozen=True)
class BaseCostResult:
    base_cost: D  # fixed costs only, rounded to cents
    context: QuoteContext
    breakdown: Dict[str, Any]
    activated_modules: Tuple[str, ...]
    variable_cost: D = D("0.00")
    missing_modules: Tuple[str, ...] = field(default_factory=tuple)


class BaseCostEngine:
    """
    Step A: runs only the scenario-independent modules.

    Variable modules (crew sizing, labor) run for their derived fields but
    their costs are kept out of base_cost; scenarios price them again.
    """

    def __init__(
        self,
        modules: Union[ModuleRegistry, Iterable[QuoteModule]],
        whitelist: Tuple[str, ...] = BASE_COST_MODULES,
        variable_modules: Tuple[str, ...] = VARIABLE_COST_MODULES,
    ):
        registry = modules if isinstance(modules, ModuleRegistry) else ModuleRegistry(modules)
        self.whitelist = tuple(whitelist)
        self.variable_modules = tuple(variable_modules)
        self.missing_modules = tuple(registry.validate_whitelist(self.whitelist, strict=False))
        self.engine = QuoteEngine(ModuleRegistry(registry.subset(self.whitelist)))

    def calculate(self, ctx: QuoteContext, options: Optional[EngineOptions] = None) -> BaseCostResult:
        options = options or EngineOptions()
        log = logger.bind(service_type=ctx.service_type, region=ctx.region)

        if self.missing_modules:
            log.bind(missing_modules=list(self.missing_modules)).warning("base_cost_modules_missing")

        out = self.engine.execute(ctx, options)
        computed = out.computed

        base_cost = computed.total_costs(exclude_modules=self.variable_modules)
        variable_cost = computed.total_costs() - base_cost

        log.bind(
            base_cost=str(q2(base_cost)),
            variable_cost=str(q2(variable_cost)),
            activated=len(computed.activated_modules),
        ).info("base_cost_calculated")

        return BaseCostResult(
            base_cost=q2(base_cost),
            context=out,
            breakdown=self.build_breakdown(out),
            activated_modules=computed.activated_modules,
            variable_cost=q2(variable_cost),
            missing_modules=self.missing_modules,
        )

    @staticmethod
    def build_breakdown(ctx: QuoteContext) -> Dict[str, Any]:
        computed = ctx.computed

        def module_total(module_id: str) -> D:
            return q2(sum((c.amount for c in computed.costs_from(module_id)), D("0")))

        labor_costs = computed.costs_from("labor-base")
        hours = DEFAULT_HOURS
        if labor_costs and labor_costs[0].metadata.get("estimated_hours") is not None:
            hours = D(str(labor_costs[0].metadata["estimated_hours"]))

        return {
            "volume": {
                "base_volume": computed.base_volume,
                "adjusted_volume": computed.adjusted_volume,
            },
            "distance": {
                "km": computed.distance_km,
                "is_long_distance": bool(computed.get("is_long_distance", False)),
            },
            "transport": {
                "fuel": module_total("fuel-cost"),
                "tolls": module_total("toll-cost"),
                "vehicle": module_total("vehicle-selection"),
            },
            "labor": {
                "workers": computed.get("workers_count", DEFAULT_WORKERS),
                "hours": hours,
                "cost": module_total("labor-base"),
            },
        }
