from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from jsonschema import ValidationError, validate

from movequote.engine.errors import QuoteError

D = Decimal

HERE = Path(__file__).resolve().parent
STANDARD_CATALOGUE_PATH = HERE / "standard_scenarios.yaml"
SCHEMA_PATH = HERE / "scenario_catalogue.schema.json"

# Client optional-service flags; scenarios decide them unless they honour the client's selection.
CROSS_SELLING_SERVICE_FLAGS: Tuple[str, ...] = (
    "packing",
    "dismantling",
    "reassembly",
    "cleaning_end",
    "temporary_storage",
)

# Client selections stashed with the service flags (restored for client-selection scenarios).
CROSS_SELLING_SELECTION_FIELDS: Tuple[str, ...] = CROSS_SELLING_SERVICE_FLAGS + (
    "storage_duration_days",
    "supplies_total",
    "supplies_details",
    "crew_flexibility",
)


class CatalogueError(QuoteError):
    pass


@dataclass(frozen=True)
class ScenarioDescriptor:
    id: str
    label: str
    margin_rate: D
    description: str = ""
    enabled_modules: Tuple[str, ...] = ()
    disabled_modules: Tuple[str, ...] = ()
    overrides: Mapping[str, Any] = field(default_factory=dict)
    tags: Tuple[str, ...] = ()
    use_client_selection: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "margin_rate", D(str(self.margin_rate)))
        if not D("0") <= self.margin_rate <= D("1"):
            raise CatalogueError(f"Scenario {self.id}: margin rate must be within [0, 1], got {self.margin_rate}")
        object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ScenarioDescriptor":
        return ScenarioDescriptor(
            id=str(d["id"]),
            label=str(d.get("label") or d["id"]),
            description=str(d.get("description") or ""),
            margin_rate=D(str(d["marginRate"])),
            enabled_modules=tuple(d.get("enabledModules") or ()),
            disabled_modules=tuple(d.get("disabledModules") or ()),
            overrides=dict(d.get("overrides") or {}),
            tags=tuple(d.get("tags") or ()),
            use_client_selection=bool(d.get("useClientSelection", False)),
        )


def parse_catalogue(d: Dict[str, Any]) -> List[ScenarioDescriptor]:
    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        schema = json.load(f)

    try:
        validate(instance=d, schema=schema)
    except ValidationError as e:
        raise CatalogueError(f"Invalid scenario catalogue: {e.message}") from e

    scenarios = [ScenarioDescriptor.from_dict(x) for x in d["scenarios"]]

    ids = [s.id for s in scenarios]
    dups = sorted({i for i in ids if ids.count(i) > 1})
    if dups:
        raise CatalogueError(f"Duplicate scenario ids in catalogue: {dups}")
    return scenarios


def load_catalogue(path: Optional[str] = None) -> List[ScenarioDescriptor]:
    catalogue_path = Path(path) if path else STANDARD_CATALOGUE_PATH
    with catalogue_path.open("r", encoding="utf-8") as f:
        d = yaml.safe_load(f)
    return parse_catalogue(d)


STANDARD_SCENARIOS: Tuple[ScenarioDescriptor, ...] = tuple(load_catalogue())


def get_scenario(scenario_id: str, scenarios: Tuple[ScenarioDescriptor, ...] = STANDARD_SCENARIOS) -> ScenarioDescriptor:
    for s in scenarios:
        if s.id == scenario_id:
            return s
    raise KeyError(f"Unknown scenario '{scenario_id}'. Known: {[s.id for s in scenarios]}")
