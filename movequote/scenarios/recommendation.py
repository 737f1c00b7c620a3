from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from movequote.core.logging_config import logger

D = Decimal

THRESHOLDS = {
    "HIGH_FLOOR": 3,
    "CRITICAL_FLOOR": 5,
    "SMALL_VOLUME": D("15"),
    "MEDIUM_VOLUME": D("30"),
    "LARGE_VOLUME": D("50"),
    "SHORT_DISTANCE": D("50"),
    "MEDIUM_DISTANCE": D("300"),
    "LONG_DISTANCE": D("500"),
    "HIGH_VALUE": D("15000"),
    "PREMIUM_VALUE": D("50000"),
    "LONG_CARRY": D("30"),
}

REASON = "reason"
WARNING = "warning"

CLIENT_PHRASES = {
    "ECO": "La formule la plus économique pour un déménagement simple.",
    "STANDARD": "Le meilleur équilibre entre prix et services.",
    "CONFORT": "On s'occupe de l'emballage et du montage pour vous.",
    "SECURITY_PLUS": "Vos biens fragiles et de valeur sont protégés de bout en bout.",
    "PREMIUM": "Un service clé en main, sans rien à gérer.",
    "FLEX": "Une offre ajustée à vos contraintes particulières.",
}


@dataclass(frozen=True)
class ScoreFactor:
    message: str
    delta: int
    kind: str = REASON  # reason | warning


@dataclass(frozen=True)
class ScenarioScore:
    scenario_id: str
    score: int
    base: int
    factors: Tuple[ScoreFactor, ...] = ()
    confidence: str = "LOW"

    @property
    def reasons(self) -> List[str]:
        return [f.message for f in self.factors if f.kind == REASON]

    @property
    def warnings(self) -> List[str]:
        return [f.message for f in self.factors if f.kind == WARNING]

    @property
    def client_phrase(self) -> str:
        return CLIENT_PHRASES.get(self.scenario_id, "")


@dataclass(frozen=True)
class Recommendation:
    recommended: ScenarioScore
    primary_reasons: Tuple[str, ...]
    alternative: Optional[ScenarioScore] = None
    alternative_reasons: Tuple[str, ...] = ()
    scores: Tuple[ScenarioScore, ...] = field(default_factory=tuple)

    def score_of(self, scenario_id: str) -> Optional[ScenarioScore]:
        for s in self.scores:
            if s.scenario_id == scenario_id:
                return s
        return None


# -----------------------
# Client profile
# -----------------------


def _dec(value: Any) -> Optional[D]:
    if value is None or value == "":
        return None
    return D(str(value))


@dataclass(frozen=True)
class ClientProfile:
    volume: Optional[D]
    distance: Optional[D]
    declared_value: D
    volume_confidence: str
    volume_method: str
    floors: Dict[str, int]
    elevators: Dict[str, Optional[str]]  # side -> None (no elevator) | size
    narrow_street: bool
    parking_authorization: bool
    long_carry: bool
    artwork: bool
    piano: bool
    safe: bool
    bulky_furniture: bool
    built_in_appliances: bool
    cleaning_end: bool
    temporary_storage: bool
    multiple_pickup_points: bool

    @staticmethod
    def from_input(data: Mapping[str, Any]) -> "ClientProfile":
        sides = ("pickup", "delivery")

        def elevator(side: str) -> Optional[str]:
            if not data.get(f"{side}_has_elevator"):
                return None
            return str(data.get(f"{side}_elevator_size") or "MEDIUM").upper()

        carries = [_dec(data.get(f"{s}_carry_distance")) for s in sides]
        return ClientProfile(
            volume=_dec(data.get("estimated_volume")),
            distance=_dec(data.get("distance")),
            declared_value=_dec(data.get("declared_value")) or D("0"),
            volume_confidence=str(data.get("volume_confidence") or "").upper(),
            volume_method=str(data.get("volume_method") or "").upper(),
            floors={s: int(data.get(f"{s}_floor") or 0) for s in sides},
            elevators={s: elevator(s) for s in sides},
            narrow_street=any(bool(data.get(f"{s}_narrow_street")) for s in sides),
            parking_authorization=any(bool(data.get(f"{s}_parking_authorization")) for s in sides),
            long_carry=any(c is not None and c > THRESHOLDS["LONG_CARRY"] for c in carries),
            artwork=bool(data.get("artwork")),
            piano=bool(data.get("piano")),
            safe=bool(data.get("safe")),
            bulky_furniture=bool(data.get("bulky_furniture")),
            built_in_appliances=bool(data.get("built_in_appliances")),
            cleaning_end=bool(data.get("cleaning_end")),
            temporary_storage=bool(data.get("temporary_storage")),
            multiple_pickup_points=bool(data.get("multiple_pickup_points")),
        )

    # predicates

    def _stairs(self, side: str, min_floor: int) -> bool:
        size = self.elevators[side]
        return self.floors[side] >= min_floor and (size is None or size == "SMALL")

    @property
    def easy_access(self) -> bool:
        return all(
            self.floors[s] <= 0 or (self.elevators[s] is not None and self.elevators[s] != "SMALL")
            for s in self.floors
        )

    @property
    def high_floor_without_elevator(self) -> bool:
        return any(self._stairs(s, THRESHOLDS["HIGH_FLOOR"]) for s in self.floors)

    @property
    def critical_floor(self) -> bool:
        return any(self._stairs(s, THRESHOLDS["CRITICAL_FLOOR"]) for s in self.floors)

    @property
    def critical_access(self) -> bool:
        hits = [
            self.high_floor_without_elevator,
            self.narrow_street,
            self.parking_authorization,
            self.long_carry,
        ]
        return sum(1 for h in hits if h) >= 2

    @property
    def has_valuables(self) -> bool:
        return self.artwork or self.piano or self.safe

    def volume_at_most(self, limit: D) -> bool:
        return self.volume is not None and self.volume <= limit

    def volume_at_least(self, limit: D) -> bool:
        return self.volume is not None and self.volume >= limit

    def distance_at_most(self, limit: D) -> bool:
        return self.distance is not None and self.distance <= limit

    def distance_at_least(self, limit: D) -> bool:
        return self.distance is not None and self.distance >= limit


# -----------------------
# Scorers
# -----------------------


def _score_eco(p: ClientProfile) -> Tuple[int, List[ScoreFactor]]:
    f: List[ScoreFactor] = []
    if p.volume_at_most(THRESHOLDS["SMALL_VOLUME"]):
        f.append(ScoreFactor("Petit volume, transport simple", 20))
    if p.easy_access:
        f.append(ScoreFactor("Accès facile aux deux adresses", 15))
    if p.distance_at_most(THRESHOLDS["SHORT_DISTANCE"]):
        f.append(ScoreFactor("Trajet court", 10))
    if p.has_valuables:
        f.append(ScoreFactor("Objets de valeur sans manutention spécialisée", -25, WARNING))
    if p.critical_floor:
        f.append(ScoreFactor("Étage critique sans ascenseur", -50, WARNING))
        f.append(ScoreFactor("Monte-meubles fortement conseillé", 0, WARNING))
    elif p.high_floor_without_elevator:
        f.append(ScoreFactor("Étage élevé sans ascenseur", -30, WARNING))
        f.append(ScoreFactor("Portage intensif prévisible", 0, WARNING))
    if p.volume_at_least(THRESHOLDS["LARGE_VOLUME"]):
        f.append(ScoreFactor("Gros volume, formule économique risquée", -20, WARNING))
    return 50, f


def _score_standard(p: ClientProfile) -> Tuple[int, List[ScoreFactor]]:
    f = [ScoreFactor("Meilleur rapport qualité-prix", 0)]
    if p.volume is not None and THRESHOLDS["SMALL_VOLUME"] < p.volume <= THRESHOLDS["MEDIUM_VOLUME"]:
        f.append(ScoreFactor("Volume moyen adapté", 15))
    if not p.critical_access and not p.easy_access:
        f.append(ScoreFactor("Contraintes d'accès modérées", 10))
    if p.artwork and p.piano:
        f.append(ScoreFactor("Plusieurs objets fragiles", -10, WARNING))
    if p.critical_floor:
        f.append(ScoreFactor("Étage critique sans ascenseur", -15, WARNING))
    return 60, f


def _score_confort(p: ClientProfile) -> Tuple[int, List[ScoreFactor]]:
    f: List[ScoreFactor] = []
    if p.artwork:
        f.append(ScoreFactor("Œuvres d'art à emballer", 20))
    if p.piano:
        f.append(ScoreFactor("Piano à démonter et protéger", 15))
    if p.bulky_furniture:
        f.append(ScoreFactor("Meubles encombrants à démonter", 15))
    if p.volume_at_least(THRESHOLDS["MEDIUM_VOLUME"]):
        f.append(ScoreFactor("Volume important à emballer", 10))
    if p.declared_value >= THRESHOLDS["HIGH_VALUE"]:
        f.append(ScoreFactor("Valeur déclarée élevée", 15))
    if p.volume_at_most(THRESHOLDS["SMALL_VOLUME"]) and not (p.artwork or p.piano):
        f.append(ScoreFactor("Petit volume, services peu utiles", -20, WARNING))
    return 40, f


def _score_security_plus(p: ClientProfile) -> Tuple[int, List[ScoreFactor]]:
    f: List[ScoreFactor] = []
    if p.has_valuables:
        f.append(ScoreFactor("Objets de valeur à sécuriser", 35))
    if p.declared_value >= THRESHOLDS["HIGH_VALUE"]:
        f.append(ScoreFactor("Valeur déclarée élevée, assurance incluse", 25))
    if p.critical_floor:
        f.append(ScoreFactor("Étage critique, manutention sécurisée", 20))
    elif p.high_floor_without_elevator:
        f.append(ScoreFactor("Étage élevé sans ascenseur", 15))
    if p.bulky_furniture:
        f.append(ScoreFactor("Meubles encombrants", 15))
    if p.narrow_street:
        f.append(ScoreFactor("Rue étroite", 10))
    if p.volume_at_most(THRESHOLDS["SMALL_VOLUME"]) and not p.has_valuables:
        f.append(ScoreFactor("Petit volume sans objet de valeur", -25, WARNING))
    if p.easy_access and not p.has_valuables:
        f.append(ScoreFactor("Accès facile sans objet de valeur", -20, WARNING))
    return 35, f


def _score_premium(p: ClientProfile) -> Tuple[int, List[ScoreFactor]]:
    f: List[ScoreFactor] = []
    if p.declared_value >= THRESHOLDS["PREMIUM_VALUE"]:
        f.append(ScoreFactor("Patrimoine de très grande valeur", 30))
    if p.volume_at_least(THRESHOLDS["LARGE_VOLUME"]):
        f.append(ScoreFactor("Très gros volume", 15))
    if p.cleaning_end:
        f.append(ScoreFactor("Nettoyage de fin de chantier souhaité", 20))
    special = sum(1 for x in (p.artwork, p.piano, p.safe, p.built_in_appliances) if x)
    if special >= 2:
        f.append(ScoreFactor("Plusieurs objets spéciaux", 20))
    if p.volume_at_most(THRESHOLDS["SMALL_VOLUME"]):
        f.append(ScoreFactor("Petit volume, formule surdimensionnée", -25, WARNING))
    return 30, f


def _score_flex(p: ClientProfile) -> Tuple[int, List[ScoreFactor]]:
    f: List[ScoreFactor] = []
    if p.distance_at_least(THRESHOLDS["LONG_DISTANCE"]):
        f.append(ScoreFactor("Très longue distance", 35))
    elif p.distance_at_least(THRESHOLDS["MEDIUM_DISTANCE"]):
        f.append(ScoreFactor("Longue distance", 20))
    if p.volume_confidence == "LOW" or p.volume_method == "FORM":
        f.append(ScoreFactor("Volume incertain, équipe ajustable", 25))
    if p.temporary_storage:
        f.append(ScoreFactor("Stockage temporaire", 15))
    if p.multiple_pickup_points:
        f.append(ScoreFactor("Plusieurs points de chargement", 15))
    if p.distance_at_most(THRESHOLDS["SHORT_DISTANCE"]) and p.volume_confidence == "HIGH":
        f.append(ScoreFactor("Déménagement simple et bien estimé", -25, WARNING))
    return 35, f


SCORERS: Tuple[Tuple[str, Callable[[ClientProfile], Tuple[int, List[ScoreFactor]]]], ...] = (
    ("ECO", _score_eco),
    ("STANDARD", _score_standard),
    ("CONFORT", _score_confort),
    ("SECURITY_PLUS", _score_security_plus),
    ("PREMIUM", _score_premium),
    ("FLEX", _score_flex),
)


def confidence_of(reasons: int, warnings: int) -> str:
    net = reasons * 2 - warnings * 1.5
    if net >= 4:
        return "HIGH"
    if net >= 2:
        return "MEDIUM"
    return "LOW"


class ScenarioRecommendationEngine:
    """
    Scores every offer archetype against the client's raw input.

    score = clamp(base + sum(factor deltas), 0, 100); the factors list keeps
    every condition that fired so a score can be re-derived from it.
    """

    def score_all(self, data: Mapping[str, Any]) -> List[ScenarioScore]:
        profile = ClientProfile.from_input(data)
        scores: List[ScenarioScore] = []
        for scenario_id, scorer in SCORERS:
            base, factors = scorer(profile)
            raw = base + sum(x.delta for x in factors)
            reasons = sum(1 for x in factors if x.kind == REASON)
            warnings = sum(1 for x in factors if x.kind == WARNING)
            scores.append(
                ScenarioScore(
                    scenario_id=scenario_id,
                    score=max(0, min(100, raw)),
                    base=base,
                    factors=tuple(factors),
                    confidence=confidence_of(reasons, warnings),
                )
            )
        # stable: ties keep archetype order
        return sorted(scores, key=lambda s: s.score, reverse=True)

    def analyze(self, data: Mapping[str, Any]) -> Recommendation:
        scores = self.score_all(data)
        best = scores[0]
        runner_up = scores[1] if len(scores) > 1 and scores[1].score > 60 else None

        logger.bind(
            recommended=best.scenario_id,
            score=best.score,
            confidence=best.confidence,
            alternative=runner_up.scenario_id if runner_up else None,
        ).info("scenario_recommended")

        return Recommendation(
            recommended=best,
            primary_reasons=tuple(best.reasons[:3]),
            alternative=runner_up,
            alternative_reasons=tuple(runner_up.reasons[:2]) if runner_up else (),
            scores=tuple(scores),
        )
