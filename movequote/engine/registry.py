from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from movequote.core.logging_config import logger

from .config import BASE_COST_MODULES
from .errors import RegistryConfigurationError
from .module import ExecutionPhase, QuoteModule, phase_of


class ModuleRegistry:
    """
    Closed set of module instances known to a scheduler.

    Built once at startup; ids are unique and every module declares an
    integer priority and a known execution phase.
    """

    def __init__(self, modules: Iterable[QuoteModule]) -> None:
        self._modules: Dict[str, QuoteModule] = {}
        for module in modules:
            self._add(module)

    def _add(self, module: QuoteModule) -> None:
        if module.id in self._modules:
            raise RegistryConfigurationError(f"Module already registered: {module.id}")
        if not isinstance(module.priority, int):
            raise RegistryConfigurationError(
                f"Module '{module.id}' has a non-integer priority: {module.priority!r}"
            )
        if not isinstance(module.execution_phase, ExecutionPhase):
            raise RegistryConfigurationError(
                f"Module '{module.id}' has an unknown execution phase: {module.execution_phase!r}"
            )
        self._modules[module.id] = module

    def __iter__(self) -> Iterator[QuoteModule]:
        return iter(self._modules.values())

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._modules

    def get(self, module_id: str) -> QuoteModule:
        try:
            return self._modules[module_id]
        except KeyError:
            raise KeyError(
                f"Unknown module '{module_id}'. Registered: {sorted(self._modules.keys())}"
            )

    def ids(self) -> List[str]:
        return list(self._modules.keys())

    def subset(self, module_ids: Iterable[str]) -> List[QuoteModule]:
        wanted = set(module_ids)
        return [m for m in self._modules.values() if m.id in wanted]

    def modules_by_phase(self, phase: int) -> List[QuoteModule]:
        return sorted(
            (m for m in self._modules.values() if phase_of(m.priority) == phase),
            key=lambda m: m.priority,
        )

    def missing(self, whitelist: Iterable[str]) -> List[str]:
        return [m for m in whitelist if m not in self._modules]

    def validate_whitelist(self, whitelist: Iterable[str], strict: bool = True) -> List[str]:
        """
        Check that every whitelisted id is registered.
        strict -> raise RegistryConfigurationError; otherwise warn and return the missing ids.
        """
        missing = self.missing(whitelist)
        if missing and strict:
            raise RegistryConfigurationError("Whitelisted modules are not registered", missing)
        if missing:
            logger.bind(missing_modules=missing).warning("registry_whitelist_incomplete")
        return missing


def default_registry(strict: Optional[bool] = None) -> ModuleRegistry:
    """Registry of every bundled module, validated against the base-cost whitelist."""
    import movequote.modules  # noqa: F401 (register all modules)
    from movequote.core.settings import get_settings

    from .module import registered_modules

    if strict is None:
        strict = get_settings().STRICT_MODULE_REGISTRY

    registry = ModuleRegistry(registered_modules())
    registry.validate_whitelist(BASE_COST_MODULES, strict=strict)
    logger.bind(modules=len(registry)).debug("registry_ready")
    return registry
