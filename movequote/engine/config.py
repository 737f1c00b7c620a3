from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import FrozenSet, Optional, Tuple

from .context import ComputedContext
from .module import ExecutionPhase

D = Decimal

# Modules allowed through an enabled-list constraint even when not listed.
ESSENTIAL_MODULES: FrozenSet[str] = frozenset(
    {
        "input-sanitization",
        "date-validation",
        "address-normalization",
        "volume-estimation",
        "volume-uncertainty-risk",
        "distance-calculation",
        "long-distance-threshold",
        "fuel-cost",
        "toll-cost",
        "vehicle-selection",
        "workers-calculation",
        "labor-base",
        "labor-access-penalty",
        "declared-value-validation",
        "insurance-premium",
    }
)

# Whitelist of the scenario-independent part of a quote (Step A).
BASE_COST_MODULES: Tuple[str, ...] = (
    "input-sanitization",
    "date-validation",
    "address-normalization",
    "volume-estimation",
    "distance-calculation",
    "long-distance-threshold",
    "fuel-cost",
    "toll-cost",
    "no-elevator-pickup",
    "no-elevator-delivery",
    "navette-required",
    "monte-meubles-recommendation",
    "furniture-lift-cost",
    "floor-penalty-cost",
    "vehicle-selection",
    "workers-calculation",
    "labor-base",
    "labor-access-penalty",
)

# Run during Step A for their derived fields, priced per scenario.
VARIABLE_COST_MODULES: Tuple[str, ...] = ("workers-calculation", "labor-base")

# Modules never re-executed when deriving scenarios from a base-cost context.
SCENARIO_SKIP_MODULES: Tuple[str, ...] = tuple(
    m for m in BASE_COST_MODULES if m not in VARIABLE_COST_MODULES
)

RISK_SCORE_CAP = 100
MANUAL_REVIEW_THRESHOLD = 70


@dataclass(frozen=True)
class EngineOptions:
    """
    Options of one scheduler run.

    start_from present -> incremental mode: the run continues from a copy of
    that output record and modules in skip_modules count as satisfied
    dependencies.
    """

    execution_phase: ExecutionPhase = ExecutionPhase.QUOTE
    enabled_modules: Tuple[str, ...] = ()
    disabled_modules: Tuple[str, ...] = ()
    skip_modules: Tuple[str, ...] = ()
    start_from: Optional[ComputedContext] = None
    margin_rate: Optional[D] = None
    debug: bool = False

    @property
    def incremental(self) -> bool:
        return self.start_from is not None


@dataclass(frozen=True)
class ModuleFilter:
    """Precomputed sets for the selection step."""

    enabled: FrozenSet[str] = field(default_factory=frozenset)
    disabled: FrozenSet[str] = field(default_factory=frozenset)
    skipped: FrozenSet[str] = field(default_factory=frozenset)

    @staticmethod
    def from_options(options: EngineOptions) -> "ModuleFilter":
        return ModuleFilter(
            enabled=frozenset(options.enabled_modules),
            disabled=frozenset(options.disabled_modules),
            skipped=frozenset(options.skip_modules),
        )
