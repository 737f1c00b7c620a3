from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import ScalarOverwriteError

D = Decimal

# Owner of the fields written by the scheduler itself (risk score, prices).
ENGINE_OWNER = "__engine__"

# Decisions (avoid string typos)
DECISION_APPLIED = "APPLIED"
DECISION_SKIPPED = "SKIPPED"
DECISION_FAILED = "FAILED"


class CostCategory(str, Enum):
    TRANSPORT = "TRANSPORT"
    VEHICLE = "VEHICLE"
    LABOR = "LABOR"
    ACCESS = "ACCESS"
    LIFT = "LIFT"
    INSURANCE = "INSURANCE"
    SERVICE = "SERVICE"
    SUPPLIES = "SUPPLIES"
    STORAGE = "STORAGE"
    HANDLING = "HANDLING"


class Severity(str, Enum):
    INFO = "INFO"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# -----------------------
# Output entries
# -----------------------


@dataclass(frozen=True)
class CostEntry:
    module_id: str
    category: str
    label: str
    amount: D
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Adjustment:
    module_id: str
    label: str
    amount: D  # signed
    type: str = "SURCHARGE"  # SURCHARGE | DISCOUNT
    reason: str = ""


@dataclass(frozen=True)
class RiskContribution:
    module_id: str
    amount: int
    reason: str


@dataclass(frozen=True)
class Requirement:
    module_id: str
    code: str
    severity: str
    reason: str


@dataclass(frozen=True)
class LegalImpact:
    module_id: str
    code: str
    severity: str
    message: str


@dataclass(frozen=True)
class CrossSellProposal:
    module_id: str
    service: str
    label: str
    estimated_price: D
    reason: str = ""


@dataclass(frozen=True)
class InsuranceNote:
    module_id: str
    code: str
    message: str


@dataclass(frozen=True)
class OperationalFlag:
    module_id: str
    code: str
    message: str


@dataclass(frozen=True)
class TraceEntry:
    """One scheduler decision about one module, in execution order."""

    module_id: str
    decision: str  # APPLIED | SKIPPED | FAILED
    reason_code: Optional[str] = None
    reason: Optional[str] = None


_ENTRY_KINDS = (
    "costs",
    "adjustments",
    "risk_contributions",
    "requirements",
    "legal_impacts",
    "cross_sell_proposals",
    "insurance_notes",
    "operational_flags",
)


@dataclass(frozen=True)
class _Checkpoint:
    lengths: Dict[str, int]
    activated: int
    trace: int
    scalars: Dict[str, Any]
    owners: Dict[str, str]
    notes: Dict[str, Any]


class ComputedContext:
    """
    Append-only output record of one pricing run.

    Entry lists only grow (read access returns tuples). Derived scalars are
    owned by the first module that writes them; another module writing the
    same scalar is refused. A module may re-write its own scalars.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, List[Any]] = {kind: [] for kind in _ENTRY_KINDS}
        self._activated: List[str] = []
        self._scalars: Dict[str, Any] = {}
        self._owners: Dict[str, str] = {}
        self._trace: List[TraceEntry] = []
        self._notes: Dict[str, Dict[str, Any]] = {}

    # -----------------------
    # Read access
    # -----------------------

    @property
    def costs(self) -> Tuple[CostEntry, ...]:
        return tuple(self._entries["costs"])

    @property
    def adjustments(self) -> Tuple[Adjustment, ...]:
        return tuple(self._entries["adjustments"])

    @property
    def risk_contributions(self) -> Tuple[RiskContribution, ...]:
        return tuple(self._entries["risk_contributions"])

    @property
    def requirements(self) -> Tuple[Requirement, ...]:
        return tuple(self._entries["requirements"])

    @property
    def legal_impacts(self) -> Tuple[LegalImpact, ...]:
        return tuple(self._entries["legal_impacts"])

    @property
    def cross_sell_proposals(self) -> Tuple[CrossSellProposal, ...]:
        return tuple(self._entries["cross_sell_proposals"])

    @property
    def insurance_notes(self) -> Tuple[InsuranceNote, ...]:
        return tuple(self._entries["insurance_notes"])

    @property
    def operational_flags(self) -> Tuple[OperationalFlag, ...]:
        return tuple(self._entries["operational_flags"])

    @property
    def activated_modules(self) -> Tuple[str, ...]:
        return tuple(self._activated)

    @property
    def trace(self) -> Tuple[TraceEntry, ...]:
        return tuple(self._trace)

    def is_activated(self, module_id: str) -> bool:
        return module_id in self._activated

    def get(self, name: str, default: Any = None) -> Any:
        value = self._scalars.get(name)
        return default if value is None else value

    def has(self, name: str) -> bool:
        return self._scalars.get(name) is not None

    def owner_of(self, name: str) -> Optional[str]:
        return self._owners.get(name)

    def notes(self, module_id: str) -> Dict[str, Any]:
        return dict(self._notes.get(module_id, {}))

    def has_requirement(self, code: str) -> bool:
        return any(r.code == code for r in self._entries["requirements"])

    def has_flag(self, code: str) -> bool:
        return any(f.code == code for f in self._entries["operational_flags"])

    def costs_from(self, module_id: str) -> Tuple[CostEntry, ...]:
        return tuple(c for c in self._entries["costs"] if c.module_id == module_id)

    def total_costs(self, exclude_modules: Iterable[str] = ()) -> D:
        excluded = set(exclude_modules)
        total = D("0")
        for c in self._entries["costs"]:
            if c.module_id not in excluded:
                total += c.amount
        return total

    # Frequently read scalars

    @property
    def base_volume(self) -> Optional[D]:
        return self.get("base_volume")

    @property
    def adjusted_volume(self) -> Optional[D]:
        return self.get("adjusted_volume")

    @property
    def distance_km(self) -> Optional[D]:
        return self.get("distance_km")

    @property
    def workers_count(self) -> Optional[int]:
        return self.get("workers_count")

    @property
    def risk_score(self) -> int:
        return self.get("risk_score", 0)

    @property
    def manual_review_required(self) -> bool:
        return bool(self.get("manual_review_required", False))

    @property
    def base_price(self) -> Optional[D]:
        return self.get("base_price")

    @property
    def final_price(self) -> Optional[D]:
        return self.get("final_price")

    @property
    def margin_rate(self) -> Optional[D]:
        return self.get("margin_rate")

    # -----------------------
    # Writes
    # -----------------------

    def add_cost(
        self, module_id: str, category: Any, label: str, amount: D, **metadata: Any
    ) -> CostEntry:
        entry = CostEntry(
            module_id=module_id,
            category=_enum_value(category),
            label=label,
            amount=D(str(amount)),
            metadata=dict(metadata),
        )
        self._entries["costs"].append(entry)
        return entry

    def add_adjustment(
        self, module_id: str, label: str, amount: D, type: str = "SURCHARGE", reason: str = ""
    ) -> Adjustment:
        entry = Adjustment(module_id, label, D(str(amount)), type, reason)
        self._entries["adjustments"].append(entry)
        return entry

    def add_risk(self, module_id: str, amount: int, reason: str) -> RiskContribution:
        entry = RiskContribution(module_id, int(amount), reason)
        self._entries["risk_contributions"].append(entry)
        return entry

    def add_requirement(self, module_id: str, code: str, severity: Any, reason: str) -> Requirement:
        entry = Requirement(module_id, code, _enum_value(severity), reason)
        self._entries["requirements"].append(entry)
        return entry

    def add_legal_impact(self, module_id: str, code: str, severity: Any, message: str) -> LegalImpact:
        entry = LegalImpact(module_id, code, _enum_value(severity), message)
        self._entries["legal_impacts"].append(entry)
        return entry

    def add_cross_sell(
        self, module_id: str, service: str, label: str, estimated_price: D, reason: str = ""
    ) -> CrossSellProposal:
        entry = CrossSellProposal(module_id, service, label, D(str(estimated_price)), reason)
        self._entries["cross_sell_proposals"].append(entry)
        return entry

    def add_insurance_note(self, module_id: str, code: str, message: str) -> InsuranceNote:
        entry = InsuranceNote(module_id, code, message)
        self._entries["insurance_notes"].append(entry)
        return entry

    def add_flag(self, module_id: str, code: str, message: str) -> OperationalFlag:
        entry = OperationalFlag(module_id, code, message)
        self._entries["operational_flags"].append(entry)
        return entry

    def set_scalar(self, name: str, value: Any, owner: str) -> None:
        current = self._owners.get(name)
        if current is not None and current != owner:
            raise ScalarOverwriteError(name, current, owner)
        self._scalars[name] = value
        self._owners[name] = owner

    def note(self, module_id: str, key: str, value: Any) -> None:
        self._notes.setdefault(module_id, {})[key] = value

    def mark_activated(self, module_id: str) -> None:
        if module_id not in self._activated:
            self._activated.append(module_id)

    def record(self, entry: TraceEntry) -> None:
        self._trace.append(entry)

    # -----------------------
    # Snapshots
    # -----------------------

    def checkpoint(self) -> _Checkpoint:
        return _Checkpoint(
            lengths={kind: len(items) for kind, items in self._entries.items()},
            activated=len(self._activated),
            trace=len(self._trace),
            scalars=dict(self._scalars),
            owners=dict(self._owners),
            notes=copy.deepcopy(self._notes),
        )

    def rollback(self, cp: _Checkpoint) -> None:
        """Drop every write made since `cp` (used when a module fails mid-apply)."""
        for kind, length in cp.lengths.items():
            del self._entries[kind][length:]
        del self._activated[cp.activated:]
        del self._trace[cp.trace:]
        self._scalars = dict(cp.scalars)
        self._owners = dict(cp.owners)
        self._notes = copy.deepcopy(cp.notes)

    def clone(self) -> "ComputedContext":
        return copy.deepcopy(self)

    def without_modules(self, module_ids: Iterable[str]) -> "ComputedContext":
        """Deep copy with every entry, activation, scalar and note of `module_ids` removed."""
        ids = set(module_ids)
        out = self.clone()
        for kind, items in out._entries.items():
            out._entries[kind] = [e for e in items if e.module_id not in ids]
        out._activated = [m for m in out._activated if m not in ids]
        out._trace = [t for t in out._trace if t.module_id not in ids]
        for name, owner in list(out._owners.items()):
            if owner in ids:
                del out._owners[name]
                out._scalars.pop(name, None)
        for module_id in ids:
            out._notes.pop(module_id, None)
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "costs": [_entry_dict(c) for c in self._entries["costs"]],
            "adjustments": [_entry_dict(a) for a in self._entries["adjustments"]],
            "riskContributions": [_entry_dict(r) for r in self._entries["risk_contributions"]],
            "requirements": [_entry_dict(r) for r in self._entries["requirements"]],
            "legalImpacts": [_entry_dict(li) for li in self._entries["legal_impacts"]],
            "crossSellProposals": [_entry_dict(p) for p in self._entries["cross_sell_proposals"]],
            "insuranceNotes": [_entry_dict(n) for n in self._entries["insurance_notes"]],
            "operationalFlags": [_entry_dict(f) for f in self._entries["operational_flags"]],
            "activatedModules": list(self._activated),
            "fields": {k: _jsonable(v) for k, v in self._scalars.items()},
        }


def _enum_value(v: Any) -> str:
    return v.value if isinstance(v, Enum) else str(v)


def _jsonable(v: Any) -> Any:
    if isinstance(v, D):
        return str(v)
    if hasattr(v, "isoformat"):  # date / datetime
        return v.isoformat()
    return v


def _entry_dict(entry: Any) -> Dict[str, Any]:
    return {k: _jsonable(v) for k, v in entry.__dict__.items()}


# -----------------------
# Input record
# -----------------------


@dataclass(frozen=True)
class QuoteContext:
    """
    Input record of a quote plus the output record being built for it.

    `input` is read-only for modules; scenario overrides produce a new
    context. `now` is injected so date-based modules stay deterministic.
    `metadata` carries run annotations (scenario id, stashed selections).
    """

    input: Mapping[str, Any]
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    computed: Optional[ComputedContext] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "input", MappingProxyType(dict(self.input)))

    def __deepcopy__(self, memo: Dict[int, Any]) -> "QuoteContext":
        return QuoteContext(
            input=copy.deepcopy(dict(self.input), memo),
            now=self.now,
            computed=copy.deepcopy(self.computed, memo),
            metadata=copy.deepcopy(self.metadata, memo),
        )

    # -----------------------
    # Input access
    # -----------------------

    @property
    def service_type(self) -> str:
        return str(self.input.get("service_type") or "")

    @property
    def region(self) -> str:
        return str(self.input.get("region") or "")

    def __getitem__(self, key: str) -> Any:
        return self.input[key]

    def get(self, key: str, default: Any = None) -> Any:
        value = self.input.get(key)
        return default if value is None else value

    def flag(self, key: str) -> bool:
        return bool(self.input.get(key))

    def get_decimal(self, key: str, default: Optional[D] = None) -> Optional[D]:
        value = self.input.get(key)
        if value is None or value == "":
            return default
        return D(str(value))

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        value = self.input.get(key)
        if value is None or value == "":
            return default
        return int(value)

    # -----------------------
    # Derivation
    # -----------------------

    def with_overrides(self, overrides: Mapping[str, Any]) -> "QuoteContext":
        """Shallow merge; override values win."""
        return replace(self, input={**self.input, **dict(overrides)})

    def with_computed(self, computed: Optional[ComputedContext]) -> "QuoteContext":
        return replace(self, computed=computed)

    def clone(self) -> "QuoteContext":
        return copy.deepcopy(self)
