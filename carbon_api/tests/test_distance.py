import itertools

import pytest

from carbon_api.engine import geo
from carbon_api.engine.distance import DistanceErr, DistanceOk, calculate_distance, distance
from carbon_api.engine.util import haversine_km, round_half_up, round_km


def test_nyc_to_lax_matches_known_distance():
    result = calculate_distance("NYC", "LAX")
    assert isinstance(result, DistanceOk)
    assert result.distance_km == pytest.approx(3936, abs=5)
    assert result.origin_coords == geo.lookup("NYC")
    assert result.destination_coords == geo.lookup("LAX")


def test_pure_formula_is_not_rounded():
    raw = distance(geo.lookup("NYC"), geo.lookup("LAX"))
    assert isinstance(raw, float)
    assert raw != int(raw)
    assert round_km(raw) == calculate_distance("NYC", "LAX").distance_km


def test_distance_is_symmetric_and_zero_on_self():
    for a, b in itertools.product(geo.supported_cities(), repeat=2):
        ab = calculate_distance(a, b)
        ba = calculate_distance(b, a)
        assert ab.distance_km == ba.distance_km
        if a == b:
            assert ab.distance_km == 0


def test_quarter_meridian():
    assert haversine_km((0.0, 0.0), (90.0, 0.0)) == pytest.approx(6371 * 3.141592653589793 / 2)


def test_unknown_origin_reported_first():
    result = calculate_distance("Atlantis", "El Dorado")
    assert isinstance(result, DistanceErr)
    assert result.side == "origin"
    assert result.reason == "Unknown origin city: Atlantis"


def test_unknown_destination():
    result = calculate_distance("NYC", "El Dorado")
    assert isinstance(result, DistanceErr)
    assert result.side == "destination"
    assert result.reason == "Unknown destination city: El Dorado"
    assert result.ok is False


def test_rounding_helpers_round_half_up():
    assert round_km(2.5) == 3
    assert round_km(2.4999) == 2
    assert round_half_up(0.125) == 0.13
    assert round_half_up(2.675) == 2.68
    assert round_half_up(1.004) == 1.0
