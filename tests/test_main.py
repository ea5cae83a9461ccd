"""
FastAPI tests for /api/weather, /api/update-city and /debug.json.

The provider modules are stubbed through the `pipeline` fixture and the
language model through `FakeBackend`, so the suite is offline-friendly.
The lifespan (background loop) is not started: the client is used without
its context manager.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from weather_agent import main
from weather_agent.config import ConfigStore, Settings
from weather_agent.errors import UpstreamError
from weather_agent.message_service import MessageComposer
from weather_agent.updater import WeatherUpdater


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #
@pytest.fixture
def agent(monkeypatch: pytest.MonkeyPatch, pipeline, fake_backend) -> WeatherUpdater:
    """Fresh updater wired into the app."""
    upd = WeatherUpdater(
        ConfigStore(Settings(city="New York", country_code="us")),
        composer=MessageComposer(fake_backend("Rain in the city.", "Sunny in Paris.")),
    )
    monkeypatch.setattr(main, "updater", upd, raising=True)
    return upd


@pytest.fixture
def client(agent: WeatherUpdater) -> TestClient:
    return TestClient(main.app)


# ------------------------------------------------------------------ #
# Tests
# ------------------------------------------------------------------ #
def test_healthz(client: TestClient) -> None:
    resp = client.get("/healthz")

    assert resp.status_code == 200
    assert resp.text == "ok"


def test_first_request_triggers_update(client: TestClient, agent, pipeline) -> None:
    resp = client.get("/api/weather")

    assert resp.status_code == 200
    data = resp.json()
    assert data["city"] == "New York"
    assert data["country"] == "US"
    assert data["message"] == "Rain in the city."
    assert data["data"]["condition"] == "Rain"
    assert data["data"]["time"] == "2:30 PM"
    assert "aqi" not in data["data"]
    assert data["timestamp"].endswith("+00:00")

    # a second request serves the published record without a new tick
    assert client.get("/api/weather").json()["message"] == "Rain in the city."
    assert agent.ticks == 1
    assert [c for c in pipeline.calls if c[0] == "fetch"] == [("fetch", "New York")]


def test_coordinates_force_update(client: TestClient, pipeline) -> None:
    resp = client.get("/api/weather", params={"lat": 48.8566, "lon": 2.3522})

    assert resp.status_code == 200
    assert resp.json()["city"] == "Somewhere"
    assert pipeline.calls[0] == ("reverse", 48.8566, 2.3522)


def test_single_coordinate_is_ignored(client: TestClient, pipeline) -> None:
    resp = client.get("/api/weather", params={"lat": 48.8566})

    assert resp.status_code == 200
    assert pipeline.calls[0][0] == "resolve"


@pytest.mark.parametrize("params", [{"lat": 91, "lon": 0}, {"lat": 0, "lon": -181}])
def test_out_of_range_coordinates_rejected(client: TestClient, params) -> None:
    assert client.get("/api/weather", params=params).status_code == 422


def test_unavailable_when_weather_fails(client: TestClient, pipeline) -> None:
    pipeline.fetch_error = UpstreamError("HTTP 500", provider="open-meteo", status=500)

    resp = client.get("/api/weather")

    assert resp.status_code == 503
    assert resp.json()["detail"].startswith("Weather data not available yet")


def test_stale_record_served_when_refresh_fails(client: TestClient, pipeline) -> None:
    assert client.get("/api/weather").status_code == 200

    pipeline.fetch_error = UpstreamError("HTTP 500", provider="open-meteo", status=500)

    # plain reads keep serving the last good record
    resp = client.get("/api/weather")
    assert resp.status_code == 200
    assert resp.json()["city"] == "New York"


@pytest.mark.parametrize("body", [{}, {"city": "   "}, {"country": "fr"}])
def test_update_city_requires_city(client: TestClient, body) -> None:
    resp = client.post("/api/update-city", json=body)

    assert resp.status_code == 400


def test_update_city(client: TestClient, agent, pipeline) -> None:
    client.get("/api/weather")

    resp = client.post("/api/update-city", json={"city": "Paris", "country": "FR"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["city"] == "Paris"
    assert data["country"] == "FR"
    assert data["message"] == "Sunny in Paris."
    assert data["config_version"] == 1
    assert ("resolve", "Paris", "FR") in pipeline.calls
    assert agent.config.settings.city == "Paris"


def test_debug_json(client: TestClient) -> None:
    before = client.get("/debug.json").json()
    assert before["ticks"] == 0
    assert before["published_version"] is None
    assert before["latest_reading"] is None

    client.get("/api/weather")
    data = client.get("/debug.json").json()

    assert data["config"]["city"] == "New York"
    assert data["config"]["version"] == 0
    assert data["ticks"] == 1
    assert data["history_len"] == 1
    assert data["latest_reading"] == "2024-06-15T14:30:00-04:00"
    assert data["published_version"] == 0
    assert data["message_state"] == "generated"
    assert data["last_error"] is None
