"""Static city coordinate index."""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class GeoCoordinate:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


_CITY_ROWS: Tuple[Tuple[str, float, float], ...] = (
    # US
    ("NYC", 40.7128, -74.0060),
    ("LAX", 34.0522, -118.2437),
    ("Chicago", 41.8781, -87.6298),
    ("Houston", 29.7604, -95.3698),
    ("Phoenix", 33.4484, -112.0740),
    ("Philadelphia", 39.9526, -75.1652),
    ("San Antonio", 29.4241, -98.4936),
    ("San Diego", 32.7157, -117.1611),
    ("Dallas", 32.7767, -96.7970),
    ("San Jose", 37.3382, -121.8863),
    ("Austin", 30.2672, -97.7431),
    ("Seattle", 47.6062, -122.3321),
    ("Denver", 39.7392, -104.9903),
    ("Boston", 42.3601, -71.0589),
    ("Miami", 25.7617, -80.1918),
    ("Atlanta", 33.7490, -84.3880),
    ("Portland", 45.5152, -122.6784),
    ("Las Vegas", 36.1699, -115.1398),
    ("Detroit", 42.3314, -83.0458),
    ("Minneapolis", 44.9778, -93.2650),
    # International
    ("London", 51.5074, -0.1278),
    ("Paris", 48.8566, 2.3522),
    ("Tokyo", 35.6762, 139.6503),
    ("Shanghai", 31.2304, 121.4737),
    ("Shenzhen", 22.5431, 114.0579),
    ("Singapore", 1.3521, 103.8198),
    ("Dubai", 25.2048, 55.2708),
    ("Sydney", -33.8688, 151.2093),
    ("Mumbai", 19.0760, 72.8777),
    ("Berlin", 52.5200, 13.4050),
    ("Toronto", 43.6532, -79.3832),
    ("Mexico City", 19.4326, -99.1332),
    ("São Paulo", -23.5505, -46.6333),
    ("Seoul", 37.5665, 126.9780),
    ("Amsterdam", 52.3676, 4.9041),
    ("Hong Kong", 22.3193, 114.1694),
    ("Frankfurt", 50.1109, 8.6821),
    # aliases of entries above
    ("Los Angeles", 34.0522, -118.2437),
    ("New York", 40.7128, -74.0060),
)

CITY_COORDINATES: Mapping[str, GeoCoordinate] = MappingProxyType(
    {name: GeoCoordinate(lat, lng) for name, lat, lng in _CITY_ROWS}
)


def lookup(city_id: str) -> Optional[GeoCoordinate]:
    """Exact, case-sensitive lookup. ``None`` means the city is unknown."""
    return CITY_COORDINATES.get(city_id)


def supported_cities() -> List[str]:
    return list(CITY_COORDINATES.keys())
