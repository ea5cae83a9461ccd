"""
models.py
~~~~~~~~~
Canonical, immutable records that flow through one update tick.

Everything here is a frozen dataclass: enrichment happens with
:func:`dataclasses.replace`, so a snapshot that has been pushed into the
history buffer can never change underneath a reader.
"""

from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class GeoLocation:
    name: str
    country_code: str
    latitude: float
    longitude: float

    @property
    def coords(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class Precipitation:
    """Precipitation totals in millimetres; ``None`` means "not reported"."""

    rain_1h: float | None = None
    rain_3h: float | None = None
    snow_1h: float | None = None
    snow_3h: float | None = None


class AQISource(str, enum.Enum):
    """Which provider – and therefore which scale – an AQI value comes from."""

    PRIMARY = "PrimaryProvider"  # IQAir, U.S. AQI 0-500
    SECONDARY = "SecondaryProvider"  # OpenWeatherMap, index 1-5

    @property
    def provider_name(self) -> str:
        return "IQAir" if self is AQISource.PRIMARY else "OpenWeatherMap"


@dataclass(frozen=True)
class AQIReading:
    value: int
    category: str
    source: AQISource
    description: str
    dominant_pollutant: str | None = None
    pollutant_value: float | None = None
    pollutant_unit: str | None = None
    pm2_5: float | None = None
    pm10: float | None = None
    components: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class WeatherSnapshot:
    location: GeoLocation
    timestamp_utc: dt.datetime
    timezone_offset_seconds: int
    local_time: dt.datetime  # wall clock at the location, fixed-offset tzinfo
    condition_code: int
    condition_label: str
    description: str
    temperature: float
    feels_like: float
    humidity_pct: int
    wind_speed: float
    wind_direction_deg: int
    cloud_cover_pct: int
    units: str = "metric"
    wind_gust: float | None = None
    pressure_hpa: float | None = None
    visibility_m: float | None = None
    precipitation: Precipitation = field(default_factory=Precipitation)
    is_daytime: bool = True
    sunrise: dt.datetime | None = None
    sunset: dt.datetime | None = None
    aqi: AQIReading | None = None


@dataclass(frozen=True)
class DerivedMetrics:
    """Pure view computed from a snapshot – never stored."""

    moon_phase: str
    wind_direction: str
    visibility_text: str
    heat_index: float | None = None
    day_length_hours: float | None = None


class ComposeState(str, enum.Enum):
    """Dedup state machine for one message composition."""

    GENERATED = "generated"
    DUPLICATE_DETECTED = "duplicate_detected"
    RETRIED = "retried"
    DISAMBIGUATED = "disambiguated"


@dataclass(frozen=True)
class ComposedMessage:
    text: str
    generated_at: dt.datetime
    state: ComposeState = ComposeState.GENERATED


@dataclass(frozen=True)
class Published:
    """What the SnapshotStore hands out: one complete, consistent pair."""

    snapshot: WeatherSnapshot
    message: ComposedMessage
    city: str
    country_code: str
    version: int = 0
