from __future__ import annotations

from enum import Enum
from typing import Dict, List, Tuple, Type

from .context import QuoteContext


class ExecutionPhase(str, Enum):
    QUOTE = "QUOTE"
    CONTRACT = "CONTRACT"
    OPERATIONS = "OPERATIONS"


# Modules in this priority range are critical: their failure aborts the run.
CRITICAL_PRIORITY_RANGE = range(10, 20)


def is_critical(priority: int) -> bool:
    return priority in CRITICAL_PRIORITY_RANGE


def phase_of(priority: int) -> int:
    """Coarse phase number (1..9) derived from the priority's tens digit."""
    return int(priority) // 10


class QuoteModule:
    """
    Base class for all pricing modules. Every module must implement apply(ctx).

    id: stable identifier (kebab-case)
    priority: lower runs earlier
    dependencies: module ids that must be activated before this one runs
    requires: computed fields that must be set before this one runs
    """

    id: str = "base"
    description: str = ""
    priority: int = 100
    execution_phase: ExecutionPhase = ExecutionPhase.QUOTE
    dependencies: Tuple[str, ...] = ()
    requires: Tuple[str, ...] = ()

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return True

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        raise NotImplementedError

    def explain_not_applicable(self, ctx: QuoteContext) -> str:
        return "business conditions not met"

    @property
    def is_critical(self) -> bool:
        return is_critical(self.priority)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r} priority={self.priority}>"


# Registry: module id -> module class
module_registry: Dict[str, Type[QuoteModule]] = {}


def register(module_cls: Type[QuoteModule]) -> Type[QuoteModule]:
    """
    Decorator to register a module class by its id.
    Fails fast on duplicate registrations (useful during dev/reload).
    """
    key = getattr(module_cls, "id", None)
    if not key or key == QuoteModule.id:
        raise ValueError(f"Module class {module_cls.__name__} has no id")

    if key in module_registry and module_registry[key] is not module_cls:
        raise ValueError(
            f"Duplicate module registration for id '{key}': "
            f"{module_registry[key].__name__} vs {module_cls.__name__}"
        )

    module_registry[key] = module_cls
    return module_cls


def registered_modules() -> List[QuoteModule]:
    """Fresh instances of every registered module, in priority order."""
    return sorted((cls() for cls in module_registry.values()), key=lambda m: m.priority)
