"""Numeric helpers shared by the calculation engine."""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Sequence[float], b: Sequence[float]) -> float:
    (lat1, lon1), (lat2, lon2) = a, b
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def round_km(distance: float) -> int:
    """Nearest whole kilometre, halves rounded up."""
    return int(math.floor(distance + 0.5))


def round_half_up(value: float, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def canonical_number(value: float) -> str:
    """Render a weight so that 10, 10.0 and 10.00 produce the same text."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)
