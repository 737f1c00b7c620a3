from .aggregator import PriceAggregator, PriceResult  # noqa
from .base_cost import BaseCostEngine, BaseCostResult  # noqa
from .config import (  # noqa
    BASE_COST_MODULES,
    ESSENTIAL_MODULES,
    SCENARIO_SKIP_MODULES,
    VARIABLE_COST_MODULES,
    EngineOptions,
)
from .context import ComputedContext, QuoteContext  # noqa
from .errors import CriticalModuleError, InvalidInputError, QuoteError  # noqa
from .module import ExecutionPhase, QuoteModule, register  # noqa
from .registry import ModuleRegistry, default_registry  # noqa
from .runner import QuoteEngine, skip_report  # noqa
