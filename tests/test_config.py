"""
tests/test_config.py
~~~~~~~~~~~~~~~~~~~~
Environment parsing and the versioned active-location store.
"""

from __future__ import annotations

import threading

import pytest

from weather_agent import config as cfg

_ENV_VARS = (
    "WEATHER_CITY",
    "WEATHER_COUNTRY",
    "WEATHER_UNITS",
    "WEATHER_CHECK_INTERVAL",
    "WEATHER_LOG_TO_FILE",
    "WEATHER_LOG_FILE",
    "LLM_PROVIDER",
    "LLM_MODEL",
    "LLM_TEMPERATURE",
    "LLM_SYSTEM_PROMPT",
    "LLM_API_KEY",
    "IQAIR_API_KEY",
    "WEATHER_API_KEY",
    "REQUEST_TIMEOUT_S",
    "LLM_TIMEOUT_S",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ── get_settings ──────────────────────────────────────────────────────────
def test_defaults() -> None:
    settings = cfg.get_settings()

    assert settings == cfg.Settings()
    assert settings.city == "London"
    assert settings.country_code == "uk"
    assert settings.units == "metric"
    assert settings.check_interval_min == 5
    assert settings.llm_provider == "anthropic"
    assert settings.llm_model == cfg.DEFAULT_ANTHROPIC_MODEL
    assert settings.llm_temperature == 0.7
    assert settings.system_prompt == cfg.DEFAULT_SYSTEM_PROMPT
    assert settings.request_timeout_s == 10.0
    assert settings.llm_timeout_s == 30.0
    assert settings.imperial is False


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEATHER_CITY", "Tokyo")
    monkeypatch.setenv("WEATHER_COUNTRY", "jp")
    monkeypatch.setenv("WEATHER_UNITS", "Imperial")
    monkeypatch.setenv("WEATHER_CHECK_INTERVAL", "15")
    monkeypatch.setenv("WEATHER_LOG_TO_FILE", "true")
    monkeypatch.setenv("LLM_PROVIDER", "OpenAI")
    monkeypatch.setenv("LLM_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("LLM_TEMPERATURE", "0.2")
    monkeypatch.setenv("LLM_SYSTEM_PROMPT", "Be brief.")
    monkeypatch.setenv("IQAIR_API_KEY", " iq ")
    monkeypatch.setenv("REQUEST_TIMEOUT_S", "4.5")
    monkeypatch.setenv("LLM_TIMEOUT_S", "12")

    settings = cfg.get_settings()

    assert (settings.city, settings.country_code) == ("Tokyo", "jp")
    assert settings.imperial is True
    assert settings.check_interval_min == 15
    assert settings.log_to_file is True
    assert settings.llm_provider == "openai"
    assert settings.llm_model == "gpt-4o-mini"
    assert settings.llm_temperature == 0.2
    assert settings.system_prompt == "Be brief."
    assert settings.iqair_api_key == "iq"
    assert settings.request_timeout_s == 4.5
    assert settings.llm_timeout_s == 12.0


@pytest.mark.parametrize(
    "name, raw, attr, expected",
    [
        ("WEATHER_CHECK_INTERVAL", "soon", "check_interval_min", 5),
        ("WEATHER_CHECK_INTERVAL", "0", "check_interval_min", 1),
        ("LLM_TEMPERATURE", "warm", "llm_temperature", 0.7),
        ("REQUEST_TIMEOUT_S", "0.1", "request_timeout_s", 1.0),
        ("LLM_TIMEOUT_S", "0", "llm_timeout_s", 1.0),
        ("LLM_TIMEOUT_S", "slow", "llm_timeout_s", 30.0),
        ("WEATHER_UNITS", "kelvin", "units", "metric"),
        ("WEATHER_LOG_TO_FILE", "yes please", "log_to_file", False),
    ],
)
def test_invalid_values_fall_back(monkeypatch, name, raw, attr, expected) -> None:
    monkeypatch.setenv(name, raw)
    assert getattr(cfg.get_settings(), attr) == expected


@pytest.mark.parametrize(
    "provider, model, expected",
    [
        ("anthropic", "gpt-4o", cfg.DEFAULT_ANTHROPIC_MODEL),
        ("anthropic", "claude-3-5-sonnet-latest", "claude-3-5-sonnet-latest"),
        ("openai", "claude-3-haiku-20240307", cfg.DEFAULT_OPENAI_MODEL),
        ("openai", "", cfg.DEFAULT_OPENAI_MODEL),
    ],
)
def test_model_must_match_provider(monkeypatch, provider, model, expected) -> None:
    monkeypatch.setenv("LLM_PROVIDER", provider)
    monkeypatch.setenv("LLM_MODEL", model)
    assert cfg.get_settings().llm_model == expected


# ── ConfigStore ───────────────────────────────────────────────────────────
def test_store_versioning() -> None:
    store = cfg.ConfigStore(cfg.Settings())
    assert store.version == 0

    assert store.set_active_location("Paris", "fr") == 1
    assert (store.settings.city, store.settings.country_code) == ("Paris", "fr")

    # country omitted → previous country kept
    assert store.set_active_location("  Lyon ") == 2
    settings, version = store.snapshot()
    assert (settings.city, settings.country_code, version) == ("Lyon", "fr", 2)


def test_store_rejects_blank_city() -> None:
    store = cfg.ConfigStore(cfg.Settings())

    with pytest.raises(ValueError):
        store.set_active_location("   ", "fr")
    assert store.version == 0
    assert store.settings.city == "London"


def test_store_snapshot_is_consistent_under_writers() -> None:
    store = cfg.ConfigStore(cfg.Settings())

    def _writer(n: int) -> None:
        for i in range(200):
            store.set_active_location(f"City {n}-{i}")

    threads = [threading.Thread(target=_writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.version == 800
