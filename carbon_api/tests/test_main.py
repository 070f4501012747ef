import pytest
from fastapi.testclient import TestClient

from carbon_api import main
from carbon_api.cache import CalculationCache, MemoryFastCache
from carbon_api.engine.audit import AuditDispatcher
from carbon_api.engine.calculator import CalculationEngine
from carbon_api.engine.errors import ExtractorUnavailable, FactorStoreUnavailable
from carbon_api.engine.extractor import TextExtractor
from carbon_api.engine.factors import EmissionFactorStore
from carbon_api.schemas import ParsedRoute


class DummyRepo:
    def __init__(self, error=None) -> None:
        self.error = error
        self.factors = {"ground": 0.1, "air": 0.5, "sea": 0.01}

    def get_factor(self, transport_mode):
        if self.error is not None:
            raise self.error
        return self.factors.get(transport_mode)

    def list_factors(self):
        if self.error is not None:
            raise self.error
        return [{"transport_mode": k, "factor_per_km_kg": v} for k, v in sorted(self.factors.items())]


class DummySink:
    def record(self, entry):  # noqa: D401 - interface contract
        pass


class DummyExtractor(TextExtractor):
    def __init__(self, parsed=None, error=None) -> None:
        self.parsed = parsed or ParsedRoute(
            origin="Tokyo", destination="Seoul", weight_kg=20, transport_mode="air", confidence=0.7, reasoning="flight"
        )
        self.error = error

    def parse(self, query):
        if self.error is not None:
            raise self.error
        return self.parsed


@pytest.fixture
def fast_cache():
    return MemoryFastCache()


@pytest.fixture
def wiring(fast_cache):
    state = {"repo": DummyRepo(), "extractor": DummyExtractor()}

    def _engine():
        return CalculationEngine(
            EmissionFactorStore(state["repo"], fast_cache),
            CalculationCache(fast_cache),
            AuditDispatcher(DummySink()),
            state["extractor"],
        )

    main.app.dependency_overrides[main.get_engine] = _engine
    main.app.dependency_overrides[main.get_factor_repo] = lambda: state["repo"]
    main.app.dependency_overrides[main.get_fast_cache] = lambda: fast_cache
    yield state
    main.app.dependency_overrides.clear()


@pytest.fixture
def client(wiring):
    return TestClient(main.app)


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_cities_lists_supported_names(client):
    body = client.get("/cities").json()
    assert body["count"] == len(body["cities"])
    assert "NYC" in body["cities"]
    assert "New York" in body["cities"]


def test_calculate_then_cache_hit(client):
    payload = {"origin": "NYC", "destination": "LAX", "weight_kg": 10, "transport_mode": "ground"}
    first = client.post("/calculate", json=payload)
    assert first.status_code == 200
    body = first.json()
    assert body["emissions_kg"] == 3936.0
    assert body["distance_km"] == 3936
    assert body["cache_hit"] is False
    assert body["request"] == {"origin": "NYC", "destination": "LAX", "weight_kg": 10.0}
    assert isinstance(body["latency_ms"], int)

    second = client.post("/calculate", json=payload).json()
    assert second["cache_hit"] is True
    assert second["calculation_id"] == body["calculation_id"]


def test_validation_errors_are_400_with_details(client):
    resp = client.post("/calculate", json={"origin": "NYC", "weight_kg": 0, "transport_mode": "rocket"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Validation failed"
    assert set(body["details"]) == {"destination", "weight_kg", "transport_mode"}


def test_unknown_city_is_400_with_suggestion(client):
    resp = client.post("/calculate", json={"origin": "NYC", "destination": "Atlantis", "weight_kg": 1})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Unknown destination city: Atlantis"
    assert "suggestion" in body
    assert "parsed" not in body


def test_unknown_mode_is_400(client, wiring):
    del wiring["repo"].factors["sea"]
    resp = client.post("/calculate", json={"origin": "NYC", "destination": "LAX", "weight_kg": 1, "transport_mode": "sea"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Unknown transport mode: sea"}


def test_factor_store_outage_is_500(client, wiring):
    wiring["repo"].error = FactorStoreUnavailable("emission factor lookup failed: timeout")
    resp = client.post("/calculate", json={"origin": "NYC", "destination": "LAX", "weight_kg": 1})
    assert resp.status_code == 500
    assert "emission factor lookup failed" in resp.json()["error"]


def test_smart_calculate(client):
    resp = client.post("/smart-calculate", json={"query": "20kg from Tokyo to Seoul by plane"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["parsed_origin"] == "Tokyo"
    assert body["parsed_destination"] == "Seoul"
    assert body["transport_mode"] == "air"
    assert body["claude_reasoning"] == "flight"
    assert body["confidence"] == 0.7
    assert body["cache_hit"] is False


def test_smart_calculate_incomplete_extraction(client, wiring):
    wiring["extractor"].parsed = ParsedRoute(origin="Tokyo", confidence=0.1, reasoning="no destination given")
    resp = client.post("/smart-calculate", json={"query": "ship from Tokyo"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Could not extract origin and destination from query"
    assert body["parsed"]["origin"] == "Tokyo"


def test_smart_calculate_extractor_outage_is_500(client, wiring):
    wiring["extractor"].error = ExtractorUnavailable("extraction request failed: 529")
    resp = client.post("/smart-calculate", json={"query": "Tokyo to Seoul"})
    assert resp.status_code == 500


def test_parse_route(client):
    resp = client.post("/parse-route", json={"query": "Tokyo to Seoul"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["origin"] == "Tokyo"
    assert body["weight_kg"] == 20
    assert "latency_ms" in body


def test_parse_route_requires_query(client):
    assert client.post("/parse-route", json={}).status_code == 400


def test_emission_factors(client):
    body = client.get("/emission-factors").json()
    assert {row["transport_mode"] for row in body["factors"]} == {"ground", "air", "sea"}


def test_clear_cache(client, fast_cache):
    fast_cache.set("emission_factor:ground", "0.1", ttl_seconds=60)
    resp = client.post("/cache/clear")
    assert resp.json() == {"success": True, "message": "Cache cleared"}
    assert fast_cache.get("emission_factor:ground") is None


def test_oversized_weight_is_400(client):
    resp = client.post("/calculate", json={"origin": "NYC", "destination": "LAX", "weight_kg": 1e306})
    assert resp.status_code == 400
    assert "weight_kg" in resp.json()["details"]
