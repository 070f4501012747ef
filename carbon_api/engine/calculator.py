"""Request orchestration: result cache, emission factor, distance, audit."""
from __future__ import annotations

import logging
import math
import time
import uuid
from typing import Callable, Dict, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ..cache import CalculationCache, CalculationCacheKey
from ..schemas import (
    MAX_WEIGHT_KG,
    CachedCalculation,
    CachedSmartCalculation,
    CalculationRequest,
    CalculationResponse,
    ParsedRoute,
    RequestEcho,
    SmartCalculationRequest,
    SmartCalculationResponse,
    format_validation_errors,
)
from .audit import AuditDispatcher
from .distance import DistanceErr, calculate_distance
from .errors import (
    ExtractionIncompleteError,
    InputValidationError,
    UnknownCityError,
    UnknownTransportModeError,
)
from .extractor import TextExtractor
from .factors import EmissionFactorStore
from .util import round_half_up

logger = logging.getLogger(__name__)

DIRECT_NAMESPACE = "calc"
SMART_NAMESPACE = "smart"
DEFAULT_MODE = "ground"
DEFAULT_WEIGHT_KG = 1.0
DIRECT_CONFIDENCE = 1.0
UNKNOWN_CITY_SUGGESTION = "The city might not be in our database. Try using a major city name."

RequestT = TypeVar("RequestT", bound=BaseModel)


def _coerce(model: Type[RequestT], payload: Union[RequestT, Mapping[str, object]]) -> RequestT:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise InputValidationError(format_validation_errors(exc.errors())) from exc


def compute_emissions(distance_km: int, weight_kg: float, factor_per_km_kg: float) -> float:
    emissions = distance_km * weight_kg * factor_per_km_kg
    if not math.isfinite(emissions):
        raise InputValidationError({"weight_kg": ["emissions for this weight are out of range"]})
    return round_half_up(emissions, 2)


class CalculationEngine:
    """Turns a shipment request into an emissions estimate.

    The engine holds no per-request state. Cached results are never mutated;
    every fresh computation gets a new ``calculation_id``.
    """

    def __init__(
        self,
        factors: EmissionFactorStore,
        results: CalculationCache,
        audit: AuditDispatcher,
        extractor: TextExtractor,
        *,
        result_ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.perf_counter,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.factors = factors
        self.results = results
        self.audit = audit
        self.extractor = extractor
        self.result_ttl_seconds = result_ttl_seconds or results.ttl_seconds
        self.clock = clock
        self.id_factory = id_factory

    def calculate(self, payload: Union[CalculationRequest, Mapping[str, object]]) -> CalculationResponse:
        started = self.clock()
        req = _coerce(CalculationRequest, payload)
        key = CalculationCacheKey(DIRECT_NAMESPACE, req.origin, req.destination, req.weight_kg, req.transport_mode)

        cached = self.results.get(key, CachedCalculation)
        if cached is not None:
            return CalculationResponse(**cached.model_dump(), cache_hit=True, latency_ms=self._elapsed_ms(started))

        distance_km, factor = self._resolve(req.origin, req.destination, req.transport_mode)
        result = CachedCalculation(
            emissions_kg=compute_emissions(distance_km, req.weight_kg, factor),
            distance_km=distance_km,
            transport_mode=req.transport_mode,
            confidence=DIRECT_CONFIDENCE,
            calculation_id=self.id_factory(),
            request=RequestEcho(origin=req.origin, destination=req.destination, weight_kg=req.weight_kg),
        )
        self._finish(key, result, req.origin, req.destination, req.weight_kg, started)
        return CalculationResponse(**result.model_dump(), cache_hit=False, latency_ms=self._elapsed_ms(started))

    def smart_calculate(self, payload: Union[SmartCalculationRequest, Mapping[str, object]]) -> SmartCalculationResponse:
        started = self.clock()
        req = _coerce(SmartCalculationRequest, payload)
        parsed = self.extractor.parse(req.query)
        if not parsed.origin.strip() or not parsed.destination.strip():
            raise ExtractionIncompleteError(parsed.model_dump())

        weight = req.weight_kg if req.weight_kg is not None else _inferred_weight(parsed)
        mode = req.transport_mode or parsed.transport_mode or DEFAULT_MODE
        key = CalculationCacheKey(SMART_NAMESPACE, parsed.origin, parsed.destination, weight, mode)

        cached = self.results.get(key, CachedSmartCalculation)
        if cached is not None:
            return SmartCalculationResponse(
                **cached.model_dump(exclude={"confidence"}),
                confidence=parsed.confidence,
                cache_hit=True,
                claude_reasoning=parsed.reasoning,
                latency_ms=self._elapsed_ms(started),
            )

        distance_km, factor = self._resolve(parsed.origin, parsed.destination, mode, parsed=parsed)
        result = CachedSmartCalculation(
            emissions_kg=compute_emissions(distance_km, weight, factor),
            distance_km=distance_km,
            transport_mode=mode,
            confidence=parsed.confidence,
            calculation_id=self.id_factory(),
            parsed_origin=parsed.origin,
            parsed_destination=parsed.destination,
            weight_kg=weight,
        )
        self._finish(key, result, parsed.origin, parsed.destination, weight, started)
        return SmartCalculationResponse(
            **result.model_dump(),
            cache_hit=False,
            claude_reasoning=parsed.reasoning,
            latency_ms=self._elapsed_ms(started),
        )

    def parse_route(self, query: str) -> ParsedRoute:
        return self.extractor.parse(query)

    def _resolve(
        self,
        origin: str,
        destination: str,
        mode: str,
        *,
        parsed: Optional[ParsedRoute] = None,
    ) -> Tuple[int, float]:
        factor = self.factors.factor(mode)
        if factor is None:
            raise UnknownTransportModeError(mode)
        outcome = calculate_distance(origin, destination)
        if isinstance(outcome, DistanceErr):
            raise UnknownCityError(
                outcome.reason,
                side=outcome.side,
                city=outcome.city,
                parsed=parsed.model_dump() if parsed is not None else None,
            )
        return outcome.distance_km, factor

    def _finish(
        self,
        key: CalculationCacheKey,
        result: Union[CachedCalculation, CachedSmartCalculation],
        origin: str,
        destination: str,
        weight_kg: float,
        started: float,
    ) -> None:
        entry: Dict[str, object] = {
            "origin": origin,
            "destination": destination,
            "weight_kg": weight_kg,
            "transport_mode": result.transport_mode,
            "distance_km": result.distance_km,
            "emissions_kg": result.emissions_kg,
            "latency_ms": self._elapsed_ms(started),
        }
        self.audit.submit(entry)
        if not self.results.set(key, result, self.result_ttl_seconds):
            logger.info("serving uncached result %s", result.calculation_id)

    def _elapsed_ms(self, started: float) -> int:
        return int((self.clock() - started) * 1000 + 0.5)


def _inferred_weight(parsed: ParsedRoute) -> float:
    weight = parsed.weight_kg
    if weight is None or not math.isfinite(weight) or weight <= 0 or weight > MAX_WEIGHT_KG:
        return DEFAULT_WEIGHT_KG
    return float(weight)
