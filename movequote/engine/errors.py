from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


class QuoteError(Exception):
    """Base class for pricing pipeline errors."""


class CriticalModuleError(QuoteError):
    """
    Raised when a module in the critical priority range fails.
    The whole run is aborted; no partial price is returned.
    """

    def __init__(self, module_id: str, message: str, meta: Optional[Dict[str, Any]] = None):
        self.module_id = str(module_id)
        self.message = str(message)
        self.meta = meta or {}
        super().__init__(f"{self.module_id}: {self.message}")


class InvalidInputError(QuoteError):
    """Raised by normalization modules when the input record is unusable."""

    def __init__(self, code: str, message: str, meta: Optional[Dict[str, Any]] = None):
        self.code = str(code)
        self.message = str(message)
        self.meta = meta or {}
        super().__init__(f"{self.code}: {self.message}")


class ScalarOverwriteError(QuoteError):
    def __init__(self, name: str, owner: str, writer: str):
        self.name = name
        self.owner = owner
        self.writer = writer
        super().__init__(
            f"Computed field '{name}' already set by '{owner}', refused write from '{writer}'"
        )


class RegistryConfigurationError(QuoteError):
    def __init__(self, message: str, missing: Iterable[str] = ()):
        self.missing = sorted(missing)
        super().__init__(message if not self.missing else f"{message}: {self.missing}")
