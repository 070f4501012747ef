"""Pydantic request/response schemas for the carbon calculator API."""
from __future__ import annotations

from typing import Dict, Iterable, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

TransportMode = Literal["ground", "air", "sea"]
# one million tonnes; keeps distance * weight * factor finite
MAX_WEIGHT_KG = 1e9


class CalculationRequest(BaseModel):
    origin: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    weight_kg: float = Field(gt=0, le=MAX_WEIGHT_KG, allow_inf_nan=False)
    transport_mode: TransportMode = "ground"

    @field_validator("origin", "destination")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        # exact-match keys: reject blanks but never rewrite the value
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class SmartCalculationRequest(BaseModel):
    query: str = Field(min_length=1)
    weight_kg: Optional[float] = Field(default=None, gt=0, le=MAX_WEIGHT_KG, allow_inf_nan=False)
    transport_mode: Optional[TransportMode] = None

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Query is required")
        return v


class ParseRouteRequest(BaseModel):
    query: str = Field(min_length=1)


class ParsedRoute(BaseModel):
    """Best-effort structured guess returned by the text extractor."""

    origin: str = ""
    destination: str = ""
    weight_kg: Optional[float] = None
    transport_mode: Optional[str] = None
    confidence: float = 0.0
    reasoning: str = ""

    @field_validator("origin", "destination", "reasoning", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("weight_kg", mode="before")
    @classmethod
    def loose_weight(cls, v):
        # "500kg" and similar drop to None instead of discarding the whole guess
        if v is None or isinstance(v, bool):
            return None
        try:
            return float(v)
        except (TypeError, ValueError):
            return None

    @field_validator("transport_mode", mode="before")
    @classmethod
    def loose_mode(cls, v):
        return v if isinstance(v, str) and v else None

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        if v is None:
            return 0.0
        return min(1.0, max(0.0, float(v)))


class RequestEcho(BaseModel):
    origin: str
    destination: str
    weight_kg: float


class CachedCalculation(BaseModel):
    emissions_kg: float
    distance_km: int = Field(ge=0)
    transport_mode: str
    confidence: float = Field(ge=0, le=1)
    calculation_id: str
    request: RequestEcho


class CalculationResponse(CachedCalculation):
    cache_hit: bool
    latency_ms: int


class CachedSmartCalculation(BaseModel):
    emissions_kg: float
    distance_km: int = Field(ge=0)
    transport_mode: str
    confidence: float = Field(ge=0, le=1)
    calculation_id: str
    parsed_origin: str
    parsed_destination: str
    weight_kg: float


class SmartCalculationResponse(CachedSmartCalculation):
    cache_hit: bool
    claude_reasoning: str
    latency_ms: int


class ParseRouteResponse(ParsedRoute):
    latency_ms: int


class CitiesResponse(BaseModel):
    cities: List[str]
    count: int


class EmissionFactorRow(BaseModel):
    transport_mode: str
    factor_per_km_kg: float


class EmissionFactorsResponse(BaseModel):
    factors: List[EmissionFactorRow]


def format_validation_errors(errors: Iterable[Mapping[str, object]]) -> Dict[str, List[str]]:
    """Group pydantic error entries by field name."""
    grouped: Dict[str, List[str]] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "_root"
        grouped.setdefault(field, []).append(str(err.get("msg", "invalid value")))
    return grouped
