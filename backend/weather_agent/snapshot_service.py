"""snapshot_service.py
~~~~~~~~~~~~~~~~~~~~~
Latest published (snapshot, message) pair plus its JSON rendering.

The store holds exactly one immutable :class:`Published` record. The updater
swaps in a new record under the lock; readers copy the reference out under
the same lock. Nobody ever observes a half-built record.

Rendering
---------
:func:`weather_data` turns a snapshot (and its derived metrics) into the flat
``key: value`` data set shared by the JSON payload and the language-model
prompt. Optional values are *omitted* when unavailable – never ``None``/0.
"""

from __future__ import annotations

import datetime as dt
import logging
import threading
from typing import Any

from .metrics import derive, temp_unit, wind_unit
from .models import AQISource, ComposedMessage, Published, WeatherSnapshot

LOG = logging.getLogger("snapshot_service")


# ── Store ─────────────────────────────────────────────────────────────────
class SnapshotStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Published | None = None

    def publish(
        self,
        snapshot: WeatherSnapshot,
        message: ComposedMessage,
        city: str,
        country_code: str,
        version: int = 0,
    ) -> Published:
        """Build a new record and swap it in atomically."""
        record = Published(
            snapshot=snapshot,
            message=message,
            city=city,
            country_code=country_code,
            version=version,
        )
        with self._lock:
            self._current = record
        LOG.debug("[snapshot] Published %s, %s (config v%d)", city, country_code, version)
        return record

    def get(self) -> Published | None:
        with self._lock:
            return self._current


# ── Formatting helpers ────────────────────────────────────────────────────
def time_12h(when: dt.datetime) -> str:
    """``3:04 PM`` style – no leading zero on the hour."""
    return f"{when.hour % 12 or 12}:{when:%M %p}"


def time_24h(when: dt.datetime) -> str:
    return f"{when:%H:%M}"


def timezone_name(offset_seconds: int) -> str:
    return "UTC%+d" % int(offset_seconds / 3600)


def _measure(value: float, unit: str) -> str:
    return f"{value:.1f}{unit}"


def _aqi_fields(snapshot: WeatherSnapshot) -> dict[str, Any]:
    reading = snapshot.aqi
    if reading is None:
        return {}

    fields: dict[str, Any] = {
        "aqi": reading.value,
        "aqi_category": reading.category,
        "aqi_description": reading.description,
        "aqi_source": reading.source.value,
        "aqi_provider": reading.source.provider_name,
    }
    if reading.source is AQISource.PRIMARY and reading.dominant_pollutant:
        fields["pollutant_name"] = reading.dominant_pollutant
        if reading.pollutant_value is not None:
            fields["pollutant_value"] = _measure(
                reading.pollutant_value, f" {reading.pollutant_unit or ''}".rstrip()
            )
    if reading.pm2_5 is not None:
        fields["pm2_5"] = _measure(reading.pm2_5, " μg/m³")
    if reading.pm10 is not None:
        fields["pm10"] = _measure(reading.pm10, " μg/m³")
    for name, value in reading.components.items():
        fields[name] = _measure(value, " μg/m³")
    return fields


def weather_data(snapshot: WeatherSnapshot) -> dict[str, Any]:
    """Flat data set for one snapshot, optional keys omitted when absent."""
    units = snapshot.units
    t_unit, w_unit = temp_unit(units), wind_unit(units)
    derived = derive(snapshot)
    local = snapshot.local_time

    data: dict[str, Any] = {
        "temperature": _measure(snapshot.temperature, t_unit),
        "feels_like": _measure(snapshot.feels_like, t_unit),
    }
    if derived.heat_index is not None:
        data["heat_index"] = _measure(derived.heat_index, t_unit)

    data.update(
        condition=snapshot.condition_label,
        description=snapshot.description,
        weather_code=snapshot.condition_code,
        humidity=snapshot.humidity_pct,
    )
    if snapshot.pressure_hpa is not None:
        data["pressure"] = f"{snapshot.pressure_hpa:.0f} hPa"
    data.update(
        wind_speed=_measure(snapshot.wind_speed, f" {w_unit}"),
        wind_direction=snapshot.wind_direction_deg,
        wind_direction_text=derived.wind_direction,
    )
    if snapshot.wind_gust is not None:
        data["wind_gust"] = _measure(snapshot.wind_gust, f" {w_unit}")
    data.update(
        cloud_cover=f"{snapshot.cloud_cover_pct}%",
        visibility=derived.visibility_text,
    )

    data.update(_aqi_fields(snapshot))

    data.update(
        time=time_12h(local),
        time_24h=time_24h(local),
        date=f"{local:%B} {local.day}, {local.year}",
        day_of_week=f"{local:%A}",
        is_daytime=snapshot.is_daytime,
    )
    if snapshot.sunrise is not None:
        data["sunrise"] = time_12h(snapshot.sunrise)
    if snapshot.sunset is not None:
        data["sunset"] = time_12h(snapshot.sunset)
    if derived.day_length_hours is not None:
        data["day_length"] = f"{derived.day_length_hours:.1f} hours"
    data["moon_phase"] = derived.moon_phase

    precip = snapshot.precipitation
    for key in ("rain_1h", "rain_3h", "snow_1h", "snow_3h"):
        amount = getattr(precip, key)
        if amount is not None and amount > 0:
            data[key] = f"{amount:.1f} mm"

    data.update(
        units=units,
        timezone_offset_hours=int(snapshot.timezone_offset_seconds / 3600),
        timezone_name=timezone_name(snapshot.timezone_offset_seconds),
    )
    return data


def to_payload(published: Published) -> dict[str, Any]:
    """JSON-ready shape consumed by the HTTP layer."""
    return {
        "city": published.city,
        "country": published.country_code,
        "message": published.message.text,
        "timestamp": published.message.generated_at.isoformat(),
        "data": weather_data(published.snapshot),
    }


__all__ = ["SnapshotStore", "weather_data", "to_payload", "time_12h", "time_24h"]
