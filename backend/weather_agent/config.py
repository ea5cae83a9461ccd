"""
config.py
~~~~~~~~~
Environment-driven settings plus a tiny versioned store for the one value
that changes at runtime: the active place.

Environment
-----------
    WEATHER_CITY / WEATHER_COUNTRY   Place to report on (default London, uk)
    WEATHER_UNITS                    "metric" or "imperial"
    WEATHER_CHECK_INTERVAL           Minutes between updates (default 5)
    WEATHER_LOG_TO_FILE / _LOG_FILE  Mirror logs into a file
    LLM_PROVIDER / LLM_MODEL         "anthropic" | "openai" and model name
    LLM_TEMPERATURE / LLM_SYSTEM_PROMPT / LLM_API_KEY
    IQAIR_API_KEY                    Enables the primary AQI provider
    WEATHER_API_KEY                  OpenWeatherMap key (secondary AQI)
    REQUEST_TIMEOUT_S                Per-call timeout in seconds (default 10)
    LLM_TIMEOUT_S                    Language-model call timeout in seconds (default 30)
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, replace

LOG = logging.getLogger("config")

DEFAULT_ANTHROPIC_MODEL = "claude-3-haiku-20240307"
DEFAULT_OPENAI_MODEL = "gpt-3.5-turbo"

DEFAULT_SYSTEM_PROMPT = """You are a helpful AI weather assistant. Your task is to analyze weather data and provide helpful, engaging, and contextual messages about the current weather.

Some guidelines:
1. Be conversational and personable
2. Vary your messages to avoid repetition
3. Include practical advice based on the weather conditions
4. Note significant changes in weather when they occur
5. Mention the time of day and how it relates to the weather when relevant
6. Make appropriate seasonal references
7. Keep responses concise and focused (1-3 sentences)
8. Occasionally include interesting weather facts
9. Adjust your tone based on severe weather (more serious for dangerous conditions)

Your messages should be directly useful to someone wondering about current weather conditions."""


@dataclass(frozen=True)
class Settings:
    city: str = "London"
    country_code: str = "uk"
    units: str = "metric"
    check_interval_min: int = 5
    log_to_file: bool = False
    log_file: str = "weather.log"
    llm_provider: str = "anthropic"
    llm_model: str = DEFAULT_ANTHROPIC_MODEL
    llm_temperature: float = 0.7
    llm_api_key: str = ""
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    iqair_api_key: str = ""
    weather_api_key: str = ""
    request_timeout_s: float = 10.0
    llm_timeout_s: float = 30.0

    @property
    def imperial(self) -> bool:
        return self.units == "imperial"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        LOG.warning("Ignoring invalid %s=%r", name, raw)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        LOG.warning("Ignoring invalid %s=%r", name, raw)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return raw.lower() == "true" or raw == "1"


def _validated_model(provider: str, model: str) -> str:
    """Keep *model* only when it plausibly belongs to *provider*."""
    if provider == "anthropic" and "claude" not in model:
        return DEFAULT_ANTHROPIC_MODEL
    if provider == "openai" and "gpt" not in model:
        return DEFAULT_OPENAI_MODEL
    return model


def get_settings() -> Settings:
    """Build :class:`Settings` from the current environment."""
    units = os.getenv("WEATHER_UNITS", "metric").strip().lower()
    if units not in ("metric", "imperial"):
        LOG.warning("Unknown WEATHER_UNITS=%r – using metric", units)
        units = "metric"

    provider = os.getenv("LLM_PROVIDER", "anthropic").strip().lower()

    return Settings(
        city=os.getenv("WEATHER_CITY", "").strip() or Settings.city,
        country_code=os.getenv("WEATHER_COUNTRY", "").strip() or Settings.country_code,
        units=units,
        check_interval_min=max(1, _env_int("WEATHER_CHECK_INTERVAL", 5)),
        log_to_file=_env_bool("WEATHER_LOG_TO_FILE", False),
        log_file=os.getenv("WEATHER_LOG_FILE", "").strip() or Settings.log_file,
        llm_provider=provider,
        llm_model=_validated_model(provider, os.getenv("LLM_MODEL", "").strip()),
        llm_temperature=_env_float("LLM_TEMPERATURE", 0.7),
        llm_api_key=os.getenv("LLM_API_KEY", "").strip(),
        system_prompt=os.getenv("LLM_SYSTEM_PROMPT", "").strip() or DEFAULT_SYSTEM_PROMPT,
        iqair_api_key=os.getenv("IQAIR_API_KEY", "").strip(),
        weather_api_key=os.getenv("WEATHER_API_KEY", "").strip(),
        request_timeout_s=max(1.0, _env_float("REQUEST_TIMEOUT_S", 10.0)),
        llm_timeout_s=max(1.0, _env_float("LLM_TIMEOUT_S", 30.0)),
    )


class ConfigStore:
    """Current :class:`Settings` plus a monotonically increasing version.

    The updater takes one :meth:`snapshot` per tick; ``set_active_location``
    only affects the *next* tick.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._version = 0
        self._lock = threading.Lock()

    def snapshot(self) -> tuple[Settings, int]:
        with self._lock:
            return self._settings, self._version

    @property
    def settings(self) -> Settings:
        return self.snapshot()[0]

    @property
    def version(self) -> int:
        return self.snapshot()[1]

    def set_active_location(self, city: str, country_code: str | None = None) -> int:
        """Switch the configured place; return the new version."""
        city = city.strip()
        if not city:
            raise ValueError("city is required")
        with self._lock:
            changes = {"city": city}
            if country_code and country_code.strip():
                changes["country_code"] = country_code.strip()
            self._settings = replace(self._settings, **changes)
            self._version += 1
            LOG.info(
                "Active location → %s, %s (v%d)",
                self._settings.city,
                self._settings.country_code,
                self._version,
            )
            return self._version
