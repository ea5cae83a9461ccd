"""geocode_service.py
~~~~~~~~~~~~~~~~~~~~~
Resolve the place we report on.

Forward (name → coordinates)
----------------------------
One Open-Meteo geocoding lookup. Any failure substitutes the fixed default
location (London) so the pipeline always has *somewhere* to fetch weather
for. Successful lookups are memoised for an hour.

Reverse (coordinates → name)
----------------------------
Ordered fallback chain, each step tried only when the previous one is empty
or synthetic:

1. BigDataCloud reverse-geocode-client – ``city`` then ``locality``.
2. Nominatim (geopy, 1 req/s) – city / town / village / municipality / county.
3. :data:`known_cities.KNOWN_CITIES` – centroid within the entry's radius.
4. ``"Location <lat>,<lon>"`` with country ``"Unknown"``.

Provider failures are logged and never escape the chain.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Final

import httpx
from dateutil import tz
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from .api_logging import logged_request_async
from .constants import DEFAULT_CITY, DEFAULT_COUNTRY, DEFAULT_LAT, DEFAULT_LON, USER_AGENT
from .errors import ResolutionError
from .known_cities import KNOWN_CITIES
from .models import GeoLocation

LOG = logging.getLogger("geocode_service")
UTC = tz.UTC

OPEN_METEO_GEOCODE_URL: Final = "https://geocoding-api.open-meteo.com/v1/search"
BIGDATACLOUD_URL: Final = "https://api.bigdatacloud.net/data/reverse-geocode-client"

REVERSE_TIMEOUT_S: Final = 5.0
FORWARD_CACHE_TTL_S: Final = 3600
NOMINATIM_FIELDS: Final = ("city", "town", "village", "municipality", "county")
SYNTHETIC_MARKER: Final = "Location"
UNKNOWN_COUNTRY: Final = "Unknown"

DEFAULT_LOCATION: Final = GeoLocation(
    name=DEFAULT_CITY,
    country_code=DEFAULT_COUNTRY,
    latitude=DEFAULT_LAT,
    longitude=DEFAULT_LON,
)


# ── Tiny per-argument TTL cache ──────────────────────────────────────────
def memo(seconds: int = 600):
    """Per-argument TTL cache for coroutines; exceptions are never cached."""

    def deco(fn):
        cache: dict[tuple, tuple[dt.datetime, object]] = {}

        async def wrapped(*args, **kwargs):
            key = (args, tuple(sorted((k, repr(v)) for k, v in kwargs.items())))
            now = dt.datetime.now(UTC)
            ts, val = cache.get(key, (dt.datetime.min.replace(tzinfo=UTC), None))
            if (now - ts).total_seconds() < seconds:
                return val
            val = await fn(*args, **kwargs)
            for stale in [k for k, (t, _) in cache.items() if (now - t).total_seconds() >= seconds]:
                del cache[stale]
            cache[key] = (now, val)
            return val

        wrapped.cache = cache  # type: ignore[attr-defined]
        wrapped.cache_clear = cache.clear  # type: ignore[attr-defined]
        wrapped.__wrapped__ = fn  # type: ignore[attr-defined]
        return wrapped

    return deco


# ── Forward lookup ───────────────────────────────────────────────────────
@memo(FORWARD_CACHE_TTL_S)
async def _lookup(name: str, country_code: str | None, timeout: float) -> GeoLocation:
    """Single Open-Meteo lookup; raise :class:`ResolutionError` on any miss."""
    params: dict[str, str | int] = {"name": name, "count": 1, "language": "en"}
    if country_code:
        params["country"] = country_code.lower()

    try:
        async with httpx.AsyncClient(
            timeout=timeout, headers={"User-Agent": USER_AGENT}
        ) as client:
            resp = await logged_request_async(
                client, "get", OPEN_METEO_GEOCODE_URL, params=params, raise_for_status=False
            )
    except httpx.HTTPError as exc:
        raise ResolutionError(f"geocoding request failed: {exc!r}") from exc

    if resp.status_code != 200:
        raise ResolutionError(f"geocoding API error (status {resp.status_code})")

    try:
        data = resp.json()
    except ValueError as exc:
        raise ResolutionError(f"failed to parse geocoding response: {exc}") from exc
    if not isinstance(data, dict):
        raise ResolutionError(f"unexpected geocoding body: {type(data).__name__}")

    results = data.get("results") or []
    if not isinstance(results, list) or not results:
        raise ResolutionError(f"no locations found for {name!r}, {country_code!r}")

    first = results[0]
    if not isinstance(first, dict):
        raise ResolutionError(f"malformed geocoding result: {first!r}")
    try:
        location = GeoLocation(
            name=first.get("name") or name,
            country_code=(first.get("country_code") or country_code or "").upper(),
            latitude=float(first["latitude"]),
            longitude=float(first["longitude"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ResolutionError(f"malformed geocoding result: {exc!r}") from exc

    LOG.info(
        "Resolved location: %s, %s (%.4f, %.4f)",
        location.name,
        first.get("country", location.country_code),
        location.latitude,
        location.longitude,
    )
    return location


async def resolve(
    name: str | None,
    country_code: str | None = None,
    *,
    timeout: float = 10.0,
) -> GeoLocation:
    """
    Resolve a place name to coordinates.

    Never raises: when the lookup fails the default location is returned.
    """
    if not name or not name.strip():
        LOG.warning("No place name configured – using default %s", DEFAULT_LOCATION.name)
        return DEFAULT_LOCATION

    try:
        return await _lookup(name.strip(), country_code or None, timeout)
    except ResolutionError as exc:
        LOG.warning(
            "Geocoding failed for %r (%s): %s – using default coordinates for %s",
            name,
            country_code,
            exc,
            DEFAULT_LOCATION.name,
        )
        return DEFAULT_LOCATION


# ── Reverse chain ────────────────────────────────────────────────────────
def _acceptable(name: str | None) -> bool:
    """Reject empty names and our own synthetic placeholders."""
    return bool(name) and SYNTHETIC_MARKER not in name  # type: ignore[operator]


async def _bigdatacloud(lat: float, lon: float, timeout: float) -> tuple[str, str] | None:
    params = {
        "latitude": f"{lat:.6f}",
        "longitude": f"{lon:.6f}",
        "localityLanguage": "en",
    }
    try:
        async with httpx.AsyncClient(
            timeout=timeout, headers={"User-Agent": USER_AGENT}
        ) as client:
            resp = await logged_request_async(
                client, "get", BIGDATACLOUD_URL, params=params, raise_for_status=False
            )
        if resp.status_code != 200:
            return None
        data = resp.json()
    except Exception as exc:  # noqa: BLE001 – next provider takes over
        LOG.warning("BigDataCloud geocoding failed for (%.4f, %.4f): %s", lat, lon, exc)
        return None

    if not isinstance(data, dict):
        LOG.warning("BigDataCloud returned a %s body – skipping", type(data).__name__)
        return None
    name = data.get("city") or data.get("locality")
    if not isinstance(name, str) or not name.strip():
        return None
    LOG.info("BigDataCloud geocoded: %s, %s", name, data.get("countryName", ""))
    return name, str(data.get("countryCode") or "").upper()


# ── Nominatim (polite rate-limited) ──────────────────────────────────────
_nominatim = Nominatim(user_agent=USER_AGENT)
_reverse_raw = RateLimiter(
    _nominatim.reverse, min_delay_seconds=1, max_retries=0, swallow_exceptions=True
)


def _nominatim_reverse(lat: float, lon: float, timeout: float) -> tuple[str, str] | None:
    """Blocking geopy call – run it through :func:`asyncio.to_thread`."""
    try:
        result = _reverse_raw(
            (lat, lon),
            exactly_one=True,
            zoom=10,
            addressdetails=True,
            language="en",
            timeout=timeout,
        )
    except Exception as exc:  # noqa: BLE001 – next provider takes over
        LOG.warning("Nominatim geocoding failed for (%.4f, %.4f): %s", lat, lon, exc)
        return None

    if not result:
        return None
    raw = result.raw if isinstance(result.raw, dict) else {}
    address = raw.get("address")
    if not isinstance(address, dict):
        return None
    for key in NOMINATIM_FIELDS:
        if address.get(key):
            LOG.info("Nominatim geocoded: %s", address[key])
            return str(address[key]), str(address.get("country_code") or "").upper()
    return None


def known_city(lat: float, lon: float) -> tuple[str, str] | None:
    """Match *lat/lon* against the static centroid table."""
    for city in KNOWN_CITIES:
        d_lat = lat - float(city["lat"])
        d_lon = lon - float(city["lon"])
        radius = float(city["radius"])
        if d_lat * d_lat + d_lon * d_lon < radius * radius:
            LOG.info("Guessed location from coordinates: %s, %s", city["name"], city["country"])
            return str(city["name"]), str(city["country"])
    return None


def placeholder(lat: float, lon: float) -> tuple[str, str]:
    return f"{SYNTHETIC_MARKER} {lat:.2f},{lon:.2f}", UNKNOWN_COUNTRY


async def reverse_resolve(
    lat: float,
    lon: float,
    *,
    timeout: float = REVERSE_TIMEOUT_S,
) -> GeoLocation:
    """Name the place at *lat/lon* via the ordered fallback chain."""
    found = await _bigdatacloud(lat, lon, timeout)
    if not (found and _acceptable(found[0])):
        found = await asyncio.to_thread(_nominatim_reverse, lat, lon, timeout)
    if not (found and _acceptable(found[0])):
        found = known_city(lat, lon)
    if not found:
        found = placeholder(lat, lon)
        LOG.warning("Reverse geocoding exhausted for (%.4f, %.4f) → %s", lat, lon, found[0])

    name, country = found
    return GeoLocation(name=name, country_code=country, latitude=lat, longitude=lon)


__all__ = ["resolve", "reverse_resolve", "known_city", "placeholder", "DEFAULT_LOCATION"]
