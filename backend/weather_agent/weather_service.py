"""
weather_service.py
~~~~~~~~~~~~~~~~~~
Fetch current conditions at a given location (Open-Meteo) and turn them into
a provisional :class:`WeatherSnapshot`.

Public helper
-------------
    fetch(location, units="metric", timeout=10.0) -> WeatherSnapshot
        raises UpstreamError on network failure, timeout, non-200 status or
        a body that lacks the current-conditions block.

Local time
----------
Open-Meteo reports ``current.time`` as a *naive* wall-clock string in the
location's zone together with ``utc_offset_seconds``. We keep the wall-clock
fields exactly as reported and attach that offset – never a conversion
through the server's own clock.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Final

import httpx
from dateutil import tz

from .api_logging import logged_request_async
from .conditions import map_condition
from .constants import USER_AGENT
from .errors import DegradedData, UpstreamError
from .models import GeoLocation, Precipitation, WeatherSnapshot

LOG = logging.getLogger("weather_service")

PROVIDER: Final = "open-meteo"
FORECAST_URL: Final = "https://api.open-meteo.com/v1/forecast"

CURRENT_FIELDS: Final = (
    "temperature_2m",
    "relative_humidity_2m",
    "apparent_temperature",
    "precipitation",
    "rain",
    "showers",
    "snowfall",
    "weather_code",
    "cloud_cover",
    "pressure_msl",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "visibility",
    "is_day",
)

# Tried in order; the first that parses wins.
TIME_FORMATS: Final = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M",
)


# ── Time helpers ─────────────────────────────────────────────────────────
def parse_local_time(raw: Any, utc_offset_seconds: int) -> dt.datetime:
    """
    Parse a provider wall-clock string and pin it to the provider's offset.

    Any offset already present in *raw* is discarded: only the wall-clock
    fields are kept, the zone always comes from *utc_offset_seconds*.

    Raises:
        DegradedData: when no accepted format matches.
    """
    zone = tz.tzoffset(None, utc_offset_seconds)
    if isinstance(raw, str):
        text = raw.strip()
        for fmt in TIME_FORMATS:
            try:
                parsed = dt.datetime.strptime(text, fmt)
            except ValueError:
                continue
            return parsed.replace(tzinfo=zone)
    raise DegradedData(f"unparseable local time {raw!r}")


def _optional_time(values: Any, utc_offset_seconds: int) -> dt.datetime | None:
    """First entry of a daily array as a local datetime, or ``None``."""
    try:
        return parse_local_time(values[0], utc_offset_seconds)
    except (DegradedData, TypeError, IndexError, KeyError):
        return None


def _num(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _positive(value: float | None) -> float | None:
    return value if value is not None and value > 0 else None


# ── Public helper ────────────────────────────────────────────────────────
async def fetch(
    location: GeoLocation,
    units: str = "metric",
    *,
    timeout: float = 10.0,
) -> WeatherSnapshot:
    """
    Return a provisional snapshot for *location*.

    Args:
        location: Resolved place (coordinates + display name).
        units:    ``"metric"`` (°C, km/h) or ``"imperial"`` (°F, mph).
        timeout:  Seconds before the request is abandoned.
    """
    lat, lon = location.coords
    imperial = units == "imperial"
    params = {
        "latitude": f"{lat:.4f}",
        "longitude": f"{lon:.4f}",
        "current": ",".join(CURRENT_FIELDS),
        "daily": "sunrise,sunset",
        "temperature_unit": "fahrenheit" if imperial else "celsius",
        "wind_speed_unit": "mph" if imperial else "kmh",
        "timezone": "auto",
    }

    try:
        async with httpx.AsyncClient(
            timeout=timeout, headers={"User-Agent": USER_AGENT}
        ) as client:
            resp = await logged_request_async(
                client, "get", FORECAST_URL, params=params, raise_for_status=False
            )
    except httpx.HTTPError as exc:
        raise UpstreamError(
            f"request failed: {exc!r}", provider=PROVIDER, coords=(lat, lon)
        ) from exc

    # Check HTTP status before parsing JSON
    if resp.status_code != 200:
        try:
            reason = resp.json().get("reason", f"HTTP {resp.status_code} error")
        except Exception:  # noqa: BLE001 – error bodies are best-effort
            reason = f"HTTP {resp.status_code} error (unable to parse response)"
        raise UpstreamError(
            reason, provider=PROVIDER, status=resp.status_code, coords=(lat, lon)
        )

    try:
        data = resp.json()
        if not isinstance(data, dict) or not isinstance(data.get("current"), dict):
            raise TypeError(f"no current-conditions object in {type(data).__name__} body")
        current = data["current"]
        code = int(current["weather_code"])
        temperature = float(current["temperature_2m"])
    except (ValueError, KeyError, TypeError) as exc:
        raise UpstreamError(
            f"malformed response ({exc!r})",
            provider=PROVIDER,
            status=resp.status_code,
            coords=(lat, lon),
        ) from exc

    offset = int(_num(data.get("utc_offset_seconds")) or 0)
    try:
        local_time = parse_local_time(current.get("time"), offset)
    except DegradedData as exc:
        local_time = dt.datetime.now(tz.tzoffset(None, offset)).replace(microsecond=0)
        LOG.warning("[degraded] %s – using current time %s", exc, local_time.isoformat())

    LOG.info(
        "Location timezone: %s (%s), offset %d s; local time %s (is_day=%s)",
        data.get("timezone"),
        data.get("timezone_abbreviation"),
        offset,
        local_time.isoformat(),
        current.get("is_day"),
    )

    daily = data.get("daily")
    if not isinstance(daily, dict):
        daily = {}
    sunrise = _optional_time(daily.get("sunrise"), offset)
    sunset = _optional_time(daily.get("sunset"), offset)

    rain = (_num(current.get("rain")) or 0.0) + (_num(current.get("showers")) or 0.0)
    snow_cm = _num(current.get("snowfall")) or 0.0

    condition = map_condition(code)
    feels_like = _num(current.get("apparent_temperature"))

    return WeatherSnapshot(
        location=location,
        timestamp_utc=local_time.astimezone(tz.UTC),
        timezone_offset_seconds=offset,
        local_time=local_time,
        condition_code=code,
        condition_label=condition.label,
        description=condition.description,
        temperature=temperature,
        feels_like=feels_like if feels_like is not None else temperature,
        humidity_pct=int(_num(current.get("relative_humidity_2m")) or 0),
        wind_speed=_num(current.get("wind_speed_10m")) or 0.0,
        wind_direction_deg=int(_num(current.get("wind_direction_10m")) or 0),
        wind_gust=_num(current.get("wind_gusts_10m")),
        cloud_cover_pct=int(_num(current.get("cloud_cover")) or 0),
        pressure_hpa=_num(current.get("pressure_msl")),
        visibility_m=_num(current.get("visibility")),
        precipitation=Precipitation(
            rain_1h=_positive(rain),
            snow_1h=_positive(snow_cm * 10.0),  # cm of snow → mm
        ),
        is_daytime=bool(current.get("is_day", 1)),
        sunrise=sunrise,
        sunset=sunset,
        units="imperial" if imperial else "metric",
    )


__all__ = ["fetch", "parse_local_time", "TIME_FORMATS", "FORECAST_URL"]
