from __future__ import annotations

import copy
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from movequote.core.logging_config import logger
from movequote.engine.aggregator import q2
from movequote.engine.config import SCENARIO_SKIP_MODULES, VARIABLE_COST_MODULES, EngineOptions
from movequote.engine.context import ENGINE_OWNER, QuoteContext
from movequote.engine.module import QuoteModule
from movequote.engine.registry import ModuleRegistry
from movequote.engine.runner import QuoteEngine

from .catalogue import (
    CROSS_SELLING_SELECTION_FIELDS,
    STANDARD_SCENARIOS,
    ScenarioDescriptor,
)

D = Decimal

SELECTION_METADATA_KEY = "client_cross_selling_selection"


@dataclass(frozen=True)
class QuoteVariant:
    scenario_id: str
    label: str
    description: str
    context: QuoteContext
    base_cost: D
    additional_costs: D
    base_price: D
    final_price: D
    margin_rate: D
    tags: Tuple[str, ...] = ()


class MultiQuoteService:
    """
    Step B: derives one priced variant per scenario from a base-cost context.

    Base modules are never re-run; their contributions are carried by the
    shared output record. Crew sizing and labor are rewound and priced per
    scenario. Every scenario works on its own deep copy, so results do not
    depend on scenario order.

    final_price = (base_cost + additional_costs) * (1 + margin_rate)
    """

    def __init__(
        self,
        modules: Union[ModuleRegistry, Iterable[QuoteModule]],
        skip_modules: Tuple[str, ...] = SCENARIO_SKIP_MODULES,
        variable_modules: Tuple[str, ...] = VARIABLE_COST_MODULES,
    ):
        self.engine = QuoteEngine(modules)
        self.skip_modules = tuple(skip_modules)
        self.variable_modules = tuple(variable_modules)

    def generate_multiple_quotes(
        self,
        base_ctx: QuoteContext,
        base_cost: D,
        scenarios: Optional[Sequence[ScenarioDescriptor]] = None,
    ) -> List[QuoteVariant]:
        scenarios = STANDARD_SCENARIOS if scenarios is None else scenarios
        variants = [self.generate_variant(base_ctx, base_cost, s) for s in scenarios]

        logger.bind(
            scenarios=[v.scenario_id for v in variants],
            base_cost=str(base_cost),
        ).info("multi_quote_generated")
        return variants

    def generate_variant(self, base_ctx: QuoteContext, base_cost: D, scenario: ScenarioDescriptor) -> QuoteVariant:
        if base_ctx.computed is None:
            raise ValueError("Context has no computed record; calculate the base cost first.")

        base_cost = D(str(base_cost))
        ctx = self.prepare_context(base_ctx, scenario)

        options = EngineOptions(
            enabled_modules=scenario.enabled_modules,
            disabled_modules=scenario.disabled_modules,
            skip_modules=self.skip_modules,
            start_from=base_ctx.computed.without_modules(self.variable_modules),
            margin_rate=scenario.margin_rate,
        )
        out = self.engine.execute(ctx, options)
        computed = out.computed

        additional = computed.total_costs(exclude_modules=self.skip_modules)
        base_price = base_cost + additional
        final_price = base_price * (D("1") + scenario.margin_rate)

        # Scenario prices replace the aggregator's figures
        computed.set_scalar("base_cost", q2(base_cost), ENGINE_OWNER)
        computed.set_scalar("additional_costs", q2(additional), ENGINE_OWNER)
        computed.set_scalar("base_price", q2(base_price), ENGINE_OWNER)
        computed.set_scalar("final_price", q2(final_price), ENGINE_OWNER)

        logger.bind(
            scenario_id=scenario.id,
            additional_costs=str(q2(additional)),
            final_price=str(q2(final_price)),
        ).info("scenario_priced")

        return QuoteVariant(
            scenario_id=scenario.id,
            label=scenario.label,
            description=scenario.description,
            context=out,
            base_cost=q2(base_cost),
            additional_costs=q2(additional),
            base_price=q2(base_price),
            final_price=q2(final_price),
            margin_rate=scenario.margin_rate,
            tags=scenario.tags,
        )

    @staticmethod
    def prepare_context(base_ctx: QuoteContext, scenario: ScenarioDescriptor) -> QuoteContext:
        """
        Fresh input copy for one scenario: client selections are stashed and
        cleared, restored only for client-selection scenarios, then the
        scenario overrides are applied on top.
        """
        data = copy.deepcopy(dict(base_ctx.input))
        stash = {k: data.pop(k) for k in CROSS_SELLING_SELECTION_FIELDS if k in data}

        metadata = copy.deepcopy(base_ctx.metadata)
        metadata["scenario_id"] = scenario.id
        metadata[SELECTION_METADATA_KEY] = copy.deepcopy(stash)

        if scenario.use_client_selection:
            data.update(stash)
        data.update(copy.deepcopy(dict(scenario.overrides)))

        return QuoteContext(input=data, now=base_ctx.now, metadata=metadata)

