"""
aqi_service.py
~~~~~~~~~~~~~~
Air-quality lookup with a two-provider fallback.

1. IQAir ``nearest_city`` (U.S. AQI 0-500) – only when ``IQAIR_API_KEY`` is set.
2. OpenWeatherMap ``air_pollution`` (index 1-5) – when IQAir is unconfigured
   or failed, and ``WEATHER_API_KEY`` is set.

Each provider's body is normalised into an :class:`AQIReading` right after the
call; the reading keeps its :class:`AQISource` so the two scales are never
compared. Failures are logged and absorbed – :func:`resolve` never raises.
"""

from __future__ import annotations

import logging
from typing import Any, Final

import httpx

from .api_logging import logged_request_async
from .constants import USER_AGENT
from .errors import UpstreamError
from .models import AQIReading, AQISource, GeoLocation

LOG = logging.getLogger("aqi_service")

IQAIR_URL: Final = "https://api.airvisual.com/v2/nearest_city"
OWM_AIR_URL: Final = "https://api.openweathermap.org/data/2.5/air_pollution"

NO_CACHE_HEADERS: Final = {
    "User-Agent": USER_AGENT,
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
}

# Placeholder value some deployments put in WEATHER_API_KEY.
UNSET_KEYS: Final = frozenset({"", "not-needed"})

# (upper bound inclusive, category) on the U.S. AQI scale
US_AQI_CATEGORIES: Final = (
    (50, "Good"),
    (100, "Moderate"),
    (150, "Unhealthy for Sensitive Groups"),
    (200, "Unhealthy"),
    (300, "Very Unhealthy"),
)

# IQAir pollutant code → (name, unit)
POLLUTANTS: Final = {
    "p2": ("PM2.5", "μg/m³"),
    "p1": ("PM10", "μg/m³"),
    "o3": ("Ozone", "ppb"),
    "n2": ("Nitrogen Dioxide", "ppb"),
    "s2": ("Sulfur Dioxide", "ppb"),
    "co": ("Carbon Monoxide", "ppm"),
}

OWM_CATEGORIES: Final = {1: "Good", 2: "Fair", 3: "Moderate", 4: "Poor", 5: "Very Poor"}
OWM_DESCRIPTIONS: Final = {
    1: "Good (1): Air quality is considered satisfactory, and air pollution poses little or no risk.",
    2: "Fair (2): Air quality is acceptable; however, for some pollutants there may be a moderate health concern for a very small number of people.",
    3: "Moderate (3): Members of sensitive groups may experience health effects. The general public is not likely to be affected.",
    4: "Poor (4): Everyone may begin to experience health effects; members of sensitive groups may experience more serious health effects.",
    5: "Very Poor (5): Health warnings of emergency conditions. The entire population is more likely to be affected.",
}
OWM_COMPONENTS: Final = ("co", "no2", "o3", "so2")


# ── Scale helpers ────────────────────────────────────────────────────────
def us_aqi_category(aqi: int) -> str:
    for upper, category in US_AQI_CATEGORIES:
        if aqi <= upper:
            return category
    return "Hazardous"


def owm_category(index: int) -> str:
    return OWM_CATEGORIES.get(index, "Unknown")


def owm_description(index: int) -> str:
    return OWM_DESCRIPTIONS.get(index, f"Unknown AQI value: {index}")


def _num(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


# ── Providers ────────────────────────────────────────────────────────────
async def _get_json(
    provider: str, url: str, params: dict, location: GeoLocation, timeout: float
) -> dict:
    """GET *url* and return the JSON body, or raise :class:`UpstreamError`."""
    try:
        async with httpx.AsyncClient(timeout=timeout, headers=NO_CACHE_HEADERS) as client:
            resp = await logged_request_async(
                client, "get", url, params=params, raise_for_status=False
            )
    except httpx.HTTPError as exc:
        raise UpstreamError(
            f"request failed: {exc!r}", provider=provider, coords=location.coords
        ) from exc

    if resp.status_code != 200:
        raise UpstreamError(
            "unexpected status", provider=provider, status=resp.status_code, coords=location.coords
        )
    try:
        body = resp.json()
    except ValueError as exc:
        raise UpstreamError(
            f"invalid JSON ({exc})", provider=provider, status=200, coords=location.coords
        ) from exc
    if not isinstance(body, dict):
        raise UpstreamError(
            f"unexpected {type(body).__name__} body",
            provider=provider,
            status=200,
            coords=location.coords,
        )
    return body


async def fetch_iqair(location: GeoLocation, api_key: str, *, timeout: float) -> AQIReading:
    """Primary reading; raises :class:`UpstreamError` on any failure."""
    lat, lon = location.coords
    params = {"lat": f"{lat:.6f}", "lon": f"{lon:.6f}", "key": api_key}
    data = await _get_json("iqair", IQAIR_URL, params, location, timeout)

    if data.get("status") != "success":
        raise UpstreamError(
            f"API status {data.get('status')!r}", provider="iqair", status=200, coords=location.coords
        )

    try:
        pollution = data["data"]["current"]["pollution"]
        if not isinstance(pollution, dict):
            raise TypeError(f"pollution is a {type(pollution).__name__}")
        aqi = int(pollution["aqius"])
    except (KeyError, TypeError, ValueError) as exc:
        raise UpstreamError(
            f"malformed body ({exc!r})", provider="iqair", status=200, coords=location.coords
        ) from exc

    code = str(pollution.get("mainus") or "")
    name, unit = POLLUTANTS.get(code, (code or None, "μg/m³"))
    category = us_aqi_category(aqi)

    LOG.info("IQAir AQI for %s: %d (%s)", location.name, aqi, category)
    return AQIReading(
        value=aqi,
        category=category,
        source=AQISource.PRIMARY,
        description=category,
        dominant_pollutant=name,
        pollutant_value=_num(pollution.get(code)) if code else None,
        pollutant_unit=unit if name else None,
        pm2_5=_num(pollution.get("p2")),
        pm10=_num(pollution.get("p1")),
    )


async def fetch_openweathermap(
    location: GeoLocation, api_key: str, *, timeout: float
) -> AQIReading:
    """Secondary reading; raises :class:`UpstreamError` on any failure."""
    lat, lon = location.coords
    params = {"lat": f"{lat:.6f}", "lon": f"{lon:.6f}", "appid": api_key}
    data = await _get_json("openweathermap", OWM_AIR_URL, params, location, timeout)

    try:
        entry = data["list"][0]
        if not isinstance(entry, dict):
            raise TypeError(f"list entry is a {type(entry).__name__}")
        index = int(entry["main"]["aqi"])
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise UpstreamError(
            f"malformed body ({exc!r})",
            provider="openweathermap",
            status=200,
            coords=location.coords,
        ) from exc

    raw = entry.get("components")
    if not isinstance(raw, dict):
        raw = {}
    components = {
        k: _num(raw.get(k)) for k in OWM_COMPONENTS if _num(raw.get(k)) is not None
    }

    LOG.info("OpenWeatherMap AQI for %s: %d (%s)", location.name, index, owm_category(index))
    return AQIReading(
        value=index,
        category=owm_category(index),
        source=AQISource.SECONDARY,
        description=owm_description(index),
        pm2_5=_num(raw.get("pm2_5")),
        pm10=_num(raw.get("pm10")),
        components=components,
    )


# ── Public helper ────────────────────────────────────────────────────────
async def resolve(
    location: GeoLocation,
    *,
    iqair_api_key: str = "",
    weather_api_key: str = "",
    timeout: float = 10.0,
) -> AQIReading | None:
    """Best available reading for *location*, or ``None`` when nothing works."""
    if iqair_api_key:
        try:
            return await fetch_iqair(location, iqair_api_key, timeout=timeout)
        except UpstreamError as exc:
            LOG.warning("IQAir unavailable – trying secondary provider: %s", exc)
    else:
        LOG.debug("IQAIR_API_KEY not set – skipping primary AQI provider")

    if weather_api_key not in UNSET_KEYS:
        try:
            return await fetch_openweathermap(location, weather_api_key, timeout=timeout)
        except UpstreamError as exc:
            LOG.warning("OpenWeatherMap AQI unavailable: %s", exc)

    LOG.info("No AQI data available for %s", location.name)
    return None


__all__ = [
    "resolve",
    "fetch_iqair",
    "fetch_openweathermap",
    "us_aqi_category",
    "owm_category",
    "owm_description",
]
