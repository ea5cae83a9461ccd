"""
tests/conftest.py
~~~~~~~~~~~~~~~~~
Global pytest fixtures.

* `_clear_geocode_cache` empties the forward-geocoding memo before and after
  every test, so a lookup cached by one test never answers another.
* `make_snapshot` builds a fully-populated :class:`WeatherSnapshot` (New York,
  light rain, 14:30 EDT) that individual tests tweak via keyword overrides.
* `FakeBackend` is a scripted language-model backend – no network.
* `pipeline` stubs geocoding, weather and AQI for whole-tick tests.
"""

from __future__ import annotations

import datetime as dt
from types import SimpleNamespace
from typing import Any, Callable

import pytest
from dateutil import tz

from weather_agent import aqi_service, geocode_service, weather_service
from weather_agent.errors import GenerationError
from weather_agent.models import GeoLocation, WeatherSnapshot


pytest_plugins = ["pytest_asyncio"]

EDT = tz.tzoffset(None, -4 * 3600)
NYC = GeoLocation(name="New York", country_code="US", latitude=40.7128, longitude=-74.0060)


@pytest.fixture(autouse=True)
def _clear_geocode_cache():
    geocode_service._lookup.cache_clear()
    yield
    geocode_service._lookup.cache_clear()


def build_snapshot(**overrides: Any) -> WeatherSnapshot:
    local = dt.datetime(2024, 6, 15, 14, 30, tzinfo=EDT)
    fields: dict[str, Any] = {
        "location": NYC,
        "timestamp_utc": local.astimezone(tz.UTC),
        "timezone_offset_seconds": -4 * 3600,
        "local_time": local,
        "condition_code": 61,
        "condition_label": "Rain",
        "description": "slight rain",
        "temperature": 28.0,
        "feels_like": 30.5,
        "humidity_pct": 55,
        "wind_speed": 12.0,
        "wind_direction_deg": 46,
        "cloud_cover_pct": 80,
        "pressure_hpa": 1012.0,
        "visibility_m": 8000.0,
        "sunrise": local.replace(hour=5, minute=25),
        "sunset": local.replace(hour=20, minute=30),
    }
    fields.update(overrides)
    return WeatherSnapshot(**fields)


@pytest.fixture
def make_snapshot() -> Callable[..., WeatherSnapshot]:
    return build_snapshot


class FakeBackend:
    """Scripted stand-in for an LLM backend.

    Each item of *replies* is returned in turn; an ``Exception`` instance is
    raised instead. The last reply repeats once the script runs out.
    """

    provider = "fake"

    def __init__(self, *replies: Any) -> None:
        self.replies = list(replies) or ["A pleasant day."]
        self.prompts: list[str] = []

    async def generate(self, user_message: str) -> str:
        self.prompts.append(user_message)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fake_backend() -> type[FakeBackend]:
    return FakeBackend


@pytest.fixture
def failing_backend() -> FakeBackend:
    return FakeBackend(GenerationError("boom", provider="fake", status=500))


@pytest.fixture
def pipeline(monkeypatch: pytest.MonkeyPatch):
    """Offline providers at the seams the updater calls.

    Every call is appended to ``calls``; set ``fetch_error`` to make the
    weather fetch raise, or ``snapshot_overrides`` to tweak what it returns.
    """
    calls: list[tuple] = []
    state = SimpleNamespace(calls=calls, snapshot_overrides={}, fetch_error=None)

    async def _resolve(name, country_code=None, *, timeout=10.0):
        calls.append(("resolve", name, country_code))
        if name == NYC.name:
            return NYC
        return GeoLocation(name, (country_code or "").upper(), 1.0, 2.0)

    async def _reverse(lat, lon, *, timeout=5.0):
        calls.append(("reverse", lat, lon))
        return GeoLocation("Somewhere", "XX", lat, lon)

    async def _fetch(location, units="metric", *, timeout=10.0):
        calls.append(("fetch", location.name))
        if state.fetch_error is not None:
            raise state.fetch_error
        return build_snapshot(location=location, **state.snapshot_overrides)

    async def _aqi(location, **kwargs):
        calls.append(("aqi", location.name))
        return None

    monkeypatch.setattr(geocode_service, "resolve", _resolve)
    monkeypatch.setattr(geocode_service, "reverse_resolve", _reverse)
    monkeypatch.setattr(weather_service, "fetch", _fetch)
    monkeypatch.setattr(aqi_service, "resolve", _aqi)
    return state
