# movequote/service.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from movequote.adapters.form import FormAdapter
from movequote.core.logging_config import logger, setup_logging
from movequote.core.settings import get_settings
from movequote.engine.base_cost import BaseCostEngine
from movequote.engine.context import QuoteContext
from movequote.engine.errors import CriticalModuleError, InvalidInputError
from movequote.engine.registry import ModuleRegistry, default_registry
from movequote.scenarios.catalogue import STANDARD_SCENARIOS, ScenarioDescriptor, get_scenario, load_catalogue
from movequote.scenarios.multi_quote import MultiQuoteService, QuoteVariant
from movequote.scenarios.output import quote_documents
from movequote.scenarios.recommendation import ScenarioRecommendationEngine
from movequote.scenarios.summary import build_comparison
from movequote.schemas import BaseCostResponse, OffersResponse, QuoteRequestV1, ScenarioQuote
from movequote.security.price_signature import (
    PriceSignatureService,
    SecuredPrice,
    SignatureVerificationResult,
    quote_data_from_context,
)

D = Decimal


# -----------------------
# Boundary errors
# -----------------------


class QuoteServiceError(Exception):
    code = "ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = str(message)
        self.details = details or {}
        super().__init__(f"{self.code}: {self.message}")

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "success": False,
            "error": self.code,
            "message": self.message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if self.details:
            out["details"] = self.details
        return out


class QuoteValidationError(QuoteServiceError):
    code = "VALIDATION_ERROR"


class QuoteInternalError(QuoteServiceError):
    code = "INTERNAL_ERROR"


def _validation_details(e: ValidationError) -> Dict[str, Any]:
    return {"errors": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]}


@dataclass(frozen=True)
class PriceResolution:
    price: D
    source: str  # SIGNED | RECOMPUTED
    verification: SignatureVerificationResult


# -----------------------
# Service
# -----------------------


class QuoteService:
    """
    Two-step quote boundary.

    Step A (calculate_base_cost): validate + normalize the request, run the
    scenario-independent modules, return base cost and context.
    Step B (generate_offers): from base cost + that context, price every
    scenario and attach the comparison/recommendation block.
    """

    def __init__(
        self,
        registry: Optional[ModuleRegistry] = None,
        adapter: Optional[FormAdapter] = None,
        signature_service: Optional[PriceSignatureService] = None,
        recommendation_engine: Optional[ScenarioRecommendationEngine] = None,
        scenarios: Optional[Sequence[ScenarioDescriptor]] = None,
    ):
        self.registry = registry or default_registry()
        self.adapter = adapter or FormAdapter()
        self.base_cost_engine = BaseCostEngine(self.registry)
        self.multi_quote = MultiQuoteService(self.registry)
        self.recommendation_engine = recommendation_engine or ScenarioRecommendationEngine()
        self._signatures = signature_service

        if scenarios is None:
            path = get_settings().SCENARIO_CATALOGUE_PATH
            scenarios = load_catalogue(path) if path else STANDARD_SCENARIOS
        self.scenarios = tuple(scenarios)

    @property
    def signatures(self) -> PriceSignatureService:
        if self._signatures is None:
            self._signatures = PriceSignatureService()
        return self._signatures

    # -----------------------
    # Step A
    # -----------------------

    def calculate_base_cost(self, payload: Mapping[str, Any], now: Optional[datetime] = None) -> BaseCostResponse:
        log = logger.bind(step="base_cost")
        try:
            ctx = self.adapter.to_quote_context(payload, now=now)
        except ValidationError as e:
            log.bind(errors=e.error_count()).warning("quote_request_invalid")
            raise QuoteValidationError("Invalid quote request", _validation_details(e)) from e

        result = self._run(lambda: self.base_cost_engine.calculate(ctx), log)

        return BaseCostResponse(
            base_cost=result.base_cost,
            context=result.context,
            breakdown=result.breakdown,
            activated_modules=list(result.activated_modules),
        )

    # -----------------------
    # Step B
    # -----------------------

    def generate_offers(
        self,
        base_cost: Optional[Any],
        context: Optional[QuoteContext],
        scenario_ids: Optional[Sequence[str]] = None,
        include_comparison: bool = True,
    ) -> OffersResponse:
        log = logger.bind(step="offers")

        if base_cost is None:
            raise QuoteValidationError("baseCost is required (run the base cost step first)")
        if context is None or context.computed is None:
            raise QuoteValidationError("context from the base cost step is required")
        try:
            QuoteRequestV1.model_validate(dict(context.input))
        except ValidationError as e:
            raise QuoteValidationError("Invalid quote context", _validation_details(e)) from e

        try:
            scenarios = self._select_scenarios(scenario_ids)
        except KeyError as e:
            raise QuoteValidationError(str(e.args[0])) from e

        variants = self._run(
            lambda: self.multi_quote.generate_multiple_quotes(context, D(str(base_cost)), scenarios), log
        )

        comparison = None
        if include_comparison and variants:
            comparison = build_comparison(variants, context.input, self.recommendation_engine)

        return OffersResponse(quotes=[self._to_quote(v) for v in variants], comparison=comparison)

    def _select_scenarios(self, scenario_ids: Optional[Sequence[str]]) -> List[ScenarioDescriptor]:
        if not scenario_ids:
            return list(self.scenarios)
        return [get_scenario(sid, self.scenarios) for sid in scenario_ids]

    @staticmethod
    def _to_quote(v: QuoteVariant) -> ScenarioQuote:
        return ScenarioQuote(
            scenario_id=v.scenario_id,
            label=v.label,
            description=v.description,
            final_price=v.final_price,
            base_price=v.base_price,
            base_cost=v.base_cost,
            additional_costs=v.additional_costs,
            margin_rate=v.margin_rate,
            tags=list(v.tags),
            context=v.context,
        )

    @staticmethod
    def _run(fn: Callable[[], Any], log: Any) -> Any:
        try:
            return fn()
        except CriticalModuleError as e:
            if isinstance(e.__cause__, InvalidInputError):
                log.bind(module_id=e.module_id, error=e.message).warning("quote_input_rejected")
                raise QuoteValidationError(e.__cause__.message, {"code": e.__cause__.code}) from e
            log.bind(module_id=e.module_id, error=e.message).error("quote_calculation_failed")
            raise QuoteInternalError(f"Critical module failed: {e.module_id}") from e

    def documents(self, variant: QuoteVariant, quote_id: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
        """Quote, field checklist, contract data and audit trail for one priced scenario."""
        return quote_documents(variant.context, quote_id)

    # -----------------------
    # Secured price
    # -----------------------

    def secure_price(self, variant: QuoteVariant, calculated_at: Optional[datetime] = None) -> SecuredPrice:
        return self.signatures.create(
            total_price=variant.final_price,
            base_price=variant.base_price,
            quote_data=quote_data_from_context(variant.context),
            calculated_at=calculated_at,
        )

    def resolve_price(
        self,
        secured: SecuredPrice,
        quote_data: Mapping[str, Any],
        recompute: Callable[[], D],
        now: Optional[datetime] = None,
    ) -> PriceResolution:
        """
        Accept a signed price from the client side, or recompute when the
        signature is invalid or stale. Never fails on a bad signature.
        """
        verification = self.signatures.verify(secured, quote_data=quote_data, now=now)
        if verification.valid:
            return PriceResolution(price=secured.total_price, source="SIGNED", verification=verification)

        price = D(str(recompute()))
        logger.bind(
            calculation_id=secured.calculation_id,
            reason=verification.reason,
            recomputed_price=str(price),
        ).warning("signed_price_recomputed")
        return PriceResolution(price=price, source="RECOMPUTED", verification=verification)


@lru_cache(maxsize=1)
def get_quote_service() -> QuoteService:
    """Process-wide service: logging configured and registry validated once, at startup."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)

    service = QuoteService()
    logger.bind(modules=len(service.registry), scenarios=[s.id for s in service.scenarios]).info("startup")
    return service
