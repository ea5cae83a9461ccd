"""
tests/test_async_safety.py
~~~~~~~~~~~~~~~~~~~~~~~~~~
Document async safety patterns in the codebase.

These tests verify that blocking and non-blocking code stay on the right
side of the event loop, particularly around:
- geopy (blocking, rate-limited) only ever reached through asyncio.to_thread()
- every HTTP provider using httpx.AsyncClient
- the updater never running two ticks at once
"""

from __future__ import annotations

import asyncio
import inspect
import threading

import pytest

from weather_agent import aqi_service, geocode_service, llm_service, updater, weather_service


class TestNominatimThreading:
    """geopy's Nominatim client is synchronous."""

    def test_nominatim_reverse_is_sync(self) -> None:
        assert not inspect.iscoroutinefunction(geocode_service._nominatim_reverse)

    def test_reverse_resolve_uses_to_thread(self) -> None:
        source = inspect.getsource(geocode_service.reverse_resolve)
        assert "asyncio.to_thread(_nominatim_reverse" in source, (
            "Nominatim must be called via asyncio.to_thread() from reverse_resolve"
        )

    async def test_nominatim_runs_off_the_event_loop(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        loop_thread = threading.get_ident()
        seen: list[int] = []

        async def _no_bdc(lat, lon, timeout):
            return None

        def _record(lat, lon, timeout):
            seen.append(threading.get_ident())
            return ("Reykjavik", "IS")

        monkeypatch.setattr(geocode_service, "_bigdatacloud", _no_bdc)
        monkeypatch.setattr(geocode_service, "_nominatim_reverse", _record)

        loc = await geocode_service.reverse_resolve(64.14, -21.94)

        assert loc.name == "Reykjavik"
        assert seen and seen[0] != loop_thread


class TestAsyncProviders:
    """Every network-facing provider is a coroutine on httpx.AsyncClient."""

    @pytest.mark.parametrize(
        "func",
        [
            weather_service.fetch,
            geocode_service.resolve,
            geocode_service.reverse_resolve,
            geocode_service._bigdatacloud,
            aqi_service.resolve,
            aqi_service.fetch_iqair,
            aqi_service.fetch_openweathermap,
            llm_service.LLMBackend.generate,
        ],
    )
    def test_provider_is_async(self, func) -> None:
        assert inspect.iscoroutinefunction(func)

    @pytest.mark.parametrize(
        "module", [weather_service, geocode_service, aqi_service, llm_service]
    )
    def test_uses_async_client(self, module) -> None:
        source = inspect.getsource(module)
        assert "httpx.AsyncClient" in source
        assert "httpx.Client(" not in source


class TestUpdaterSerialisation:
    def test_updater_holds_asyncio_lock(self) -> None:
        source = inspect.getsource(updater.WeatherUpdater.run_once)
        assert "async with self._lock" in source

    def test_lock_type(self) -> None:
        from weather_agent.config import ConfigStore, Settings

        upd = updater.WeatherUpdater(ConfigStore(Settings()))
        assert isinstance(upd._lock, asyncio.Lock)
