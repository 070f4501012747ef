"""City-to-city great-circle distance."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from . import geo
from .util import haversine_km, round_km


@dataclass(frozen=True)
class DistanceOk:
    distance_km: int
    origin_coords: geo.GeoCoordinate
    destination_coords: geo.GeoCoordinate

    ok = True


@dataclass(frozen=True)
class DistanceErr:
    reason: str
    side: str  # "origin" or "destination"
    city: str

    ok = False


DistanceResult = Union[DistanceOk, DistanceErr]


def distance(origin: geo.GeoCoordinate, destination: geo.GeoCoordinate) -> float:
    return haversine_km(origin.as_tuple(), destination.as_tuple())


def calculate_distance(origin_id: str, destination_id: str) -> DistanceResult:
    origin = geo.lookup(origin_id)
    if origin is None:
        return DistanceErr(f"Unknown origin city: {origin_id}", "origin", origin_id)
    destination = geo.lookup(destination_id)
    if destination is None:
        return DistanceErr(f"Unknown destination city: {destination_id}", "destination", destination_id)
    return DistanceOk(
        distance_km=round_km(distance(origin, destination)),
        origin_coords=origin,
        destination_coords=destination,
    )
