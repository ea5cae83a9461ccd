"""
updater.py
~~~~~~~~~~
The single writer: one pipeline execution per tick, never overlapping.

    resolve place ─▶ fetch weather ─▶ AQI ─▶ day/night ─▶ history
        ─▶ compose message ─▶ publish

Failure policy
--------------
* geocoding and AQI problems degrade the snapshot but never abort the tick;
* :class:`UpstreamError` from the weather fetch aborts before the history push;
* :class:`GenerationError` aborts publication (the snapshot stays in history).

In both abort cases the previously published record remains visible.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging

from . import aqi_service, geocode_service, weather_service
from .config import ConfigStore
from .errors import GenerationError, UpstreamError, WeatherAgentError
from .history import HistoryBuffer
from .llm_service import create_backend
from .message_service import MessageComposer
from .metrics import is_daytime
from .models import ComposedMessage, Published, WeatherSnapshot
from .snapshot_service import SnapshotStore

LOG = logging.getLogger("updater")
LOG_BG = logging.getLogger("bg")


class WeatherUpdater:
    def __init__(
        self,
        config: ConfigStore,
        *,
        store: SnapshotStore | None = None,
        history: HistoryBuffer | None = None,
        composer: MessageComposer | None = None,
    ) -> None:
        self.config = config
        self.store = store or SnapshotStore()
        self.history = history or HistoryBuffer()
        self._composer = composer
        self._lock = asyncio.Lock()
        self.last_message: ComposedMessage | None = None
        self.last_error: Exception | None = None
        self.ticks = 0

    # ── Pipeline ──────────────────────────────────────────────────────────
    def _composer_for(self, settings) -> MessageComposer:
        if self._composer is None:
            self._composer = MessageComposer(create_backend(settings))
        return self._composer

    async def _assemble(self, settings, coords: tuple[float, float] | None) -> WeatherSnapshot:
        timeout = settings.request_timeout_s
        if coords is not None:
            location = await geocode_service.reverse_resolve(*coords)
        else:
            location = await geocode_service.resolve(
                settings.city, settings.country_code, timeout=timeout
            )

        snapshot = await weather_service.fetch(location, settings.units, timeout=timeout)

        aqi = await aqi_service.resolve(
            location,
            iqair_api_key=settings.iqair_api_key,
            weather_api_key=settings.weather_api_key,
            timeout=timeout,
        )
        return dataclasses.replace(
            snapshot,
            aqi=aqi,
            is_daytime=is_daytime(snapshot.local_time, snapshot.sunrise, snapshot.sunset),
        )

    async def run_once(self, coords: tuple[float, float] | None = None) -> Published:
        """
        Execute the full pipeline once and publish the result.

        Args:
            coords: Optional ``(lat, lon)`` anchor replacing the configured
                    place name for this tick.

        Raises:
            UpstreamError: weather provider failed – nothing published.
            GenerationError: message generation failed – nothing published.
        """
        async with self._lock:
            settings, version = self.config.snapshot()
            snapshot = await self._assemble(settings, coords)
            self.history.push(snapshot)

            previous = self.last_message.text if self.last_message else None
            message = await self._composer_for(settings).compose(
                snapshot, self.history, previous
            )
            self.last_message = message
            self.ticks += 1

            location = snapshot.location
            record = self.store.publish(
                snapshot, message, location.name, location.country_code, version
            )
            LOG.info(
                "[%s, %s] %s (%s)",
                location.name,
                location.country_code,
                message.text,
                message.state.value,
            )
            return record

    # ── Collaborator interface ────────────────────────────────────────────
    async def trigger_update(
        self, coords: tuple[float, float] | None = None
    ) -> Exception | None:
        """Run one tick; return the error that aborted it instead of raising."""
        try:
            await self.run_once(coords)
        except UpstreamError as exc:
            LOG.error("Weather fetch failed – tick aborted: %s", exc)
            self.last_error = exc
            return exc
        except GenerationError as exc:
            LOG.error(
                "Message generation failed (provider=%s status=%s): %s",
                exc.provider,
                exc.status,
                exc,
            )
            self.last_error = exc
            return exc
        except WeatherAgentError as exc:
            LOG.error("Update failed: %s", exc)
            self.last_error = exc
            return exc
        self.last_error = None
        return None

    def get_latest_snapshot(
        self,
    ) -> tuple[WeatherSnapshot, ComposedMessage, str, str] | None:
        record = self.store.get()
        if record is None:
            return None
        return record.snapshot, record.message, record.city, record.country_code

    def set_active_location(self, city: str, country_code: str | None = None) -> int:
        """Change the configured place; the next tick picks it up."""
        return self.config.set_active_location(city, country_code)

    # ── Background loop ───────────────────────────────────────────────────
    async def run_forever(self) -> None:
        """Tick, then sleep the configured interval; runs until cancelled."""
        while True:
            try:
                await self.trigger_update()
            except Exception as exc:  # noqa: BLE001 – the loop must survive
                LOG_BG.error("[loop] crashed: %s", exc, exc_info=True)
            interval = self.config.settings.check_interval_min * 60
            await asyncio.sleep(interval)
