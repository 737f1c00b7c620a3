from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from movequote.core.logging_config import logger
from movequote.core.settings import get_settings

from .aggregator import PriceAggregator
from .config import (
    ESSENTIAL_MODULES,
    MANUAL_REVIEW_THRESHOLD,
    RISK_SCORE_CAP,
    EngineOptions,
    ModuleFilter,
)
from .context import (
    DECISION_APPLIED,
    DECISION_FAILED,
    DECISION_SKIPPED,
    ENGINE_OWNER,
    ComputedContext,
    QuoteContext,
    Severity,
    TraceEntry,
)
from .errors import CriticalModuleError
from .module import QuoteModule
from .registry import ModuleRegistry

D = Decimal

# Skip reason codes
MISSING_DEPENDENCY = "MISSING_DEPENDENCY"
MISSING_PREREQUISITE = "MISSING_PREREQUISITE"
NOT_APPLICABLE = "NOT_APPLICABLE"
MODULE_ERROR = "MODULE_ERROR"


def skip_report(computed: ComputedContext) -> Dict[str, List[str]]:
    """Module ids that did not apply, grouped by reason code."""
    out: Dict[str, List[str]] = {}
    for t in computed.trace:
        if t.decision == DECISION_APPLIED:
            continue
        out.setdefault(t.reason_code or t.decision, []).append(t.module_id)
    return out


class QuoteEngine:
    """
    Priority-ordered, dependency-aware module scheduler.

    Behavior:
    - select: phase -> skip list -> disabled -> enabled list (essentials
      always pass) -> early applicability for modules without dependencies
    - stable sort by priority
    - per module: dependencies -> prerequisites -> late applicability
      (modules with dependencies) -> apply -> mark activated
    - critical modules (priority 10-19) abort the run on error; any other
      failing module is rolled back, logged and treated as skipped
    - finalize: risk score, manual review flag, aggregated price
    """

    def __init__(
        self,
        modules: Union[ModuleRegistry, Iterable[QuoteModule]],
        aggregator: Optional[PriceAggregator] = None,
    ):
        self.registry = modules if isinstance(modules, ModuleRegistry) else ModuleRegistry(modules)
        self.aggregator = aggregator or PriceAggregator()

    # -----------------------
    # Selection
    # -----------------------

    def select_modules(self, ctx: QuoteContext, options: EngineOptions) -> List[QuoteModule]:
        flt = ModuleFilter.from_options(options)
        selected: List[QuoteModule] = []

        for module in self.registry:
            if module.execution_phase != options.execution_phase:
                continue
            if module.id in flt.skipped:
                continue
            # disable wins over enable
            if module.id in flt.disabled:
                continue
            if flt.enabled and module.id not in flt.enabled and module.id not in ESSENTIAL_MODULES:
                continue
            if not module.dependencies and not self._applicable_at_selection(module, ctx):
                continue
            selected.append(module)

        # sorted() is stable: equal priorities keep registration order
        return sorted(selected, key=lambda m: m.priority)

    def _applicable_at_selection(self, module: QuoteModule, ctx: QuoteContext) -> bool:
        computed = ctx.computed
        try:
            applicable = module.is_applicable(ctx)
        except Exception as e:
            if module.is_critical:
                raise CriticalModuleError(module.id, f"{type(e).__name__}: {e}") from e
            logger.bind(module_id=module.id, exc=f"{type(e).__name__}: {e}").warning("module_failed")
            self._skip(computed, module, MODULE_ERROR, f"{type(e).__name__}: {e}", failed=True)
            return False

        if not applicable:
            self._skip(computed, module, NOT_APPLICABLE, module.explain_not_applicable(ctx))
        return applicable

    # -----------------------
    # Run
    # -----------------------

    def execute(self, ctx: QuoteContext, options: Optional[EngineOptions] = None) -> QuoteContext:
        options = options or EngineOptions()
        margin = options.margin_rate
        if margin is None:
            margin = get_settings().DEFAULT_MARGIN_RATE
        margin = D(str(margin))

        computed = options.start_from.clone() if options.incremental else ComputedContext()
        ctx = ctx.with_computed(computed)

        log = logger.bind(
            mode="incremental" if options.incremental else "full",
            phase=options.execution_phase.value,
            scenario_id=ctx.metadata.get("scenario_id"),
            service_type=ctx.service_type,
        )
        log.info("quote_run_started")

        satisfied: Set[str] = set(options.skip_modules) if options.incremental else set()
        for module in self.select_modules(ctx, options):
            ctx = self._run_module(module, ctx, satisfied, log, options.debug)

        ctx = self._finalize(ctx, margin)

        computed = ctx.computed
        log.bind(
            activated=len(computed.activated_modules),
            skipped={k: len(v) for k, v in skip_report(computed).items()},
            risk_score=computed.risk_score,
            final_price=str(computed.final_price),
        ).info("quote_run_finished")
        return ctx

    def _run_module(
        self,
        module: QuoteModule,
        ctx: QuoteContext,
        satisfied: Set[str],
        log: Any,
        debug: bool = False,
    ) -> QuoteContext:
        computed = ctx.computed

        missing = [
            dep for dep in module.dependencies if dep not in satisfied and not computed.is_activated(dep)
        ]
        if missing:
            self._skip(computed, module, MISSING_DEPENDENCY, f"missing dependencies: {', '.join(missing)}")
            return ctx

        unmet = [name for name in module.requires if not computed.has(name)]
        if unmet:
            self._skip(computed, module, MISSING_PREREQUISITE, f"missing computed fields: {', '.join(unmet)}")
            return ctx

        cp = computed.checkpoint()
        try:
            if module.dependencies and not module.is_applicable(ctx):
                self._skip(computed, module, NOT_APPLICABLE, module.explain_not_applicable(ctx))
                return ctx

            result = module.apply(ctx)
            if not isinstance(result, QuoteContext) or result.computed is not computed:
                raise TypeError(f"apply() must return the context it was given, got {type(result).__name__}")

        except Exception as e:
            computed.rollback(cp)
            error = f"{type(e).__name__}: {e}"
            if module.is_critical:
                log.bind(module_id=module.id, priority=module.priority, exc=error).error(
                    "critical_module_failed"
                )
                raise CriticalModuleError(module.id, error) from e

            log.bind(module_id=module.id, priority=module.priority, exc=error).warning("module_failed")
            self._skip(computed, module, MODULE_ERROR, error, failed=True)
            return ctx

        computed.mark_activated(module.id)
        computed.record(TraceEntry(module.id, DECISION_APPLIED))
        bound = log.bind(module_id=module.id, priority=module.priority)
        if debug:
            bound.info("module_applied")
        else:
            bound.debug("module_applied")
        return result

    @staticmethod
    def _skip(
        computed: ComputedContext,
        module: QuoteModule,
        code: str,
        reason: str,
        failed: bool = False,
    ) -> None:
        decision = DECISION_FAILED if failed else DECISION_SKIPPED
        computed.record(TraceEntry(module.id, decision, code, reason))
        logger.bind(module_id=module.id, reason_code=code, reason=reason).debug("module_skipped")

    # -----------------------
    # Finalization
    # -----------------------

    def _finalize(self, ctx: QuoteContext, margin: D) -> QuoteContext:
        computed = ctx.computed

        risk_score = min(sum(r.amount for r in computed.risk_contributions), RISK_SCORE_CAP)
        critical_legal = any(li.severity == Severity.CRITICAL.value for li in computed.legal_impacts)
        manual_review = risk_score > MANUAL_REVIEW_THRESHOLD or critical_legal

        price = self.aggregator.compute(computed, margin)

        computed.set_scalar("risk_score", risk_score, ENGINE_OWNER)
        computed.set_scalar("manual_review_required", manual_review, ENGINE_OWNER)
        computed.set_scalar("base_price", price.base_price, ENGINE_OWNER)
        computed.set_scalar("final_price", price.final_price, ENGINE_OWNER)
        computed.set_scalar("margin_rate", margin, ENGINE_OWNER)
        return ctx
