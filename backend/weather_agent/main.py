"""
main.py – FastAPI entry point
=============================

* Lifespan runs one initial update, then the periodic loop as a task.
* ``/api/weather`` serves the latest published record; ``lat``/``lon`` query
  parameters force a coordinate-anchored update first.
* ``/api/update-city`` switches the configured place and refreshes.
"""

from __future__ import annotations

# ─── Std-lib / third-party ────────────────────────────────────────────
import asyncio
import contextlib
import datetime as dt
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

# ─── Project modules ──────────────────────────────────────────────────
from .config import ConfigStore, get_settings
from .snapshot_service import to_payload
from .updater import WeatherUpdater

# ─── Logging ──────────────────────────────────────────────────────────
import logging
import sys

LOG_BG = logging.getLogger("bg")
LOG = logging.getLogger("weather_agent")

_LOGGER_NAMES = (
    "bg",
    "weather_agent",
    "updater",
    "weather_service",
    "geocode_service",
    "aqi_service",
    "message_service",
    "llm_service",
    "snapshot_service",
    "metrics",
    "config",
    "extapi",
)
_FORMAT = logging.Formatter("%(levelname)s:     %(name)s - %(message)s")


def _configure_logging(log_to_file: bool, log_file: str) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_to_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(_FORMAT)
    for name in _LOGGER_NAMES:
        logger = logging.getLogger(name)
        logger.handlers = list(handlers)
        logger.setLevel(logging.INFO)


# ---------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------
load_dotenv()
SETTINGS = get_settings()
_configure_logging(SETTINGS.log_to_file, SETTINGS.log_file)

UTC = dt.timezone.utc

updater = WeatherUpdater(ConfigStore(SETTINGS))


# ---------------------------------------------------------------------
# Lifespan – background weather updates
# ---------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: N802 – FastAPI naming style
    """Refresh once at startup, then every ``WEATHER_CHECK_INTERVAL`` minutes."""
    settings = updater.config.settings
    LOG.info(
        "Weather agent started for %s, %s (every %d min, %s units, %s)",
        settings.city,
        settings.country_code,
        settings.check_interval_min,
        settings.units,
        settings.llm_provider,
    )

    # The loop's first tick is the initial update.
    task = asyncio.create_task(updater.run_forever())
    app.state.updater = updater  # type: ignore[attr-defined]

    yield  # ⇢ application runs here

    # Shutdown: stop the update loop
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


# ---------------------------------------------------------------------
# FastAPI instance & middleware
# ---------------------------------------------------------------------
app = FastAPI(title="Weather Agent", lifespan=lifespan)

ALLOWED_ORIGINS = [
    "http://localhost:8080",
    "http://127.0.0.1:8080",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# Health probe --------------------------------------------------------
@app.get("/healthz", response_class=PlainTextResponse)
async def healthz() -> PlainTextResponse:
    """Return HTTP 200 with body “ok” if the app is up."""
    return PlainTextResponse("ok", status_code=200)


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------
def _unavailable(error: Exception | None) -> HTTPException:
    detail = "Weather data not available yet"
    if error is not None:
        detail = f"{detail}: {error}"
    return HTTPException(status_code=503, detail=detail)


@app.get("/api/weather")
async def weather(
    lat: float | None = Query(None, ge=-90, le=90),
    lon: float | None = Query(None, ge=-180, le=180),
) -> JSONResponse:
    """Latest weather + message; explicit coordinates trigger a fresh update."""
    if lat is not None and lon is not None:
        LOG.info("Coordinate request: (%.4f, %.4f)", lat, lon)
        error = await updater.trigger_update((lat, lon))
        if error is not None:
            raise _unavailable(error)
    elif updater.store.get() is None:
        error = await updater.trigger_update()
        if error is not None:
            raise _unavailable(error)

    record = updater.store.get()
    if record is None:
        raise _unavailable(updater.last_error)
    return JSONResponse(to_payload(record))


@app.post("/api/update-city")
async def update_city(body: dict[str, Any]) -> JSONResponse:
    """Switch the configured place (``{"city": ..., "country": ...}``)."""
    city = str(body.get("city") or "").strip()
    if not city:
        raise HTTPException(status_code=400, detail="city is required")
    country = str(body.get("country") or "").strip() or None

    version = updater.set_active_location(city, country)
    error = await updater.trigger_update()
    if error is not None:
        raise _unavailable(error)

    record = updater.store.get()
    payload = to_payload(record) if record is not None else {}
    payload["config_version"] = version
    return JSONResponse(payload)


@app.get("/debug.json")
async def debug_json() -> JSONResponse:  # noqa: D401
    """Machine-readable updater state."""
    settings, version = updater.config.snapshot()
    record = updater.store.get()
    latest = updater.history.latest()
    return JSONResponse(
        {
            "ts": dt.datetime.now(UTC).isoformat(),
            "config": {
                "version": version,
                "city": settings.city,
                "country": settings.country_code,
                "units": settings.units,
                "check_interval_min": settings.check_interval_min,
                "llm_provider": settings.llm_provider,
                "llm_model": settings.llm_model,
                "iqair_configured": bool(settings.iqair_api_key),
            },
            "ticks": updater.ticks,
            "history_len": len(updater.history),
            "latest_reading": latest.local_time.isoformat() if latest else None,
            "published_version": record.version if record else None,
            "message_state": record.message.state.value if record else None,
            "last_error": str(updater.last_error) if updater.last_error else None,
        }
    )
