# movequote/schemas.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, NonNegativeInt, constr
from pydantic.alias_generators import to_camel


class QuoteRequestV1(BaseModel):
    """
    Canonical move request. Accepts snake_case, camelCase and the legacy
    French field names for date and addresses. Unknown fields are kept and
    forwarded to the input record untouched.
    """

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    service_type: constr(strip_whitespace=True, min_length=1) = "MOVING"  # type: ignore
    region: constr(strip_whitespace=True, min_length=1) = "FR"  # type: ignore

    moving_date: Union[datetime, date, constr(strip_whitespace=True, min_length=1)] = Field(  # type: ignore
        validation_alias=AliasChoices("moving_date", "movingDate", "dateSouhaitee")
    )
    departure_address: constr(strip_whitespace=True, min_length=1) = Field(  # type: ignore
        validation_alias=AliasChoices("departure_address", "departureAddress", "pickupAddress", "adresseDepart")
    )
    arrival_address: constr(strip_whitespace=True, min_length=1) = Field(  # type: ignore
        validation_alias=AliasChoices("arrival_address", "arrivalAddress", "deliveryAddress", "adresseArrivee")
    )

    # Volume
    estimated_volume: Optional[Decimal] = Field(None, ge=0)
    surface: Optional[Decimal] = Field(None, ge=0)
    housing_type: Optional[str] = None
    rooms: Optional[NonNegativeInt] = None
    volume_method: Optional[str] = None
    volume_confidence: Optional[str] = None
    distance: Optional[Decimal] = Field(None, ge=0)

    # Access, per address
    pickup_floor: Optional[int] = None
    pickup_has_elevator: Optional[bool] = None
    pickup_elevator_size: Optional[str] = None
    pickup_carry_distance: Optional[Decimal] = Field(None, ge=0)
    pickup_narrow_street: Optional[bool] = None
    pickup_parking_authorization: Optional[bool] = None
    delivery_floor: Optional[int] = None
    delivery_has_elevator: Optional[bool] = None
    delivery_elevator_size: Optional[str] = None
    delivery_carry_distance: Optional[Decimal] = Field(None, ge=0)
    delivery_narrow_street: Optional[bool] = None
    delivery_parking_authorization: Optional[bool] = None
    refuse_lift_despite_recommendation: Optional[bool] = None

    # Items
    piano: Optional[bool] = None
    safe: Optional[bool] = None
    artwork: Optional[bool] = None
    bulky_furniture: Optional[bool] = None
    built_in_appliances: Optional[bool] = None
    complex_items: Optional[NonNegativeInt] = None
    declared_value: Optional[Decimal] = Field(None, ge=0)
    declared_value_insurance: Optional[bool] = None

    # Optional services
    packing: Optional[bool] = None
    dismantling: Optional[bool] = None
    reassembly: Optional[bool] = None
    cleaning_end: Optional[bool] = None
    temporary_storage: Optional[bool] = None
    storage_duration_days: Optional[NonNegativeInt] = None
    supplies_total: Optional[Decimal] = Field(None, ge=0)
    crew_flexibility: Optional[bool] = None
    multiple_pickup_points: Optional[bool] = None


class BaseCostResponse(BaseModel):
    success: bool = True
    base_cost: Decimal
    context: Any  # QuoteContext, forwarded verbatim
    breakdown: Dict[str, Any]
    activated_modules: List[str]


class ScenarioQuote(BaseModel):
    scenario_id: str
    label: str
    description: str = ""
    final_price: Decimal
    base_price: Decimal
    base_cost: Decimal
    additional_costs: Decimal
    margin_rate: Decimal
    tags: List[str] = Field(default_factory=list)
    context: Any  # QuoteContext, forwarded verbatim


class OffersResponse(BaseModel):
    success: bool = True
    quotes: List[ScenarioQuote]
    comparison: Optional[Dict[str, Any]] = None
