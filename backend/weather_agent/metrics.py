"""
metrics.py
~~~~~~~~~~
Derived metrics computed from an assembled :class:`WeatherSnapshot`.

All helpers are pure; :func:`derive` bundles them into a
:class:`DerivedMetrics` view that is recomputed whenever it is needed.

* heat index      – Rothfusz regression, only above 80 °F and 40 % RH
* moon phase      – days since a reference new moon, modulo a synodic month
* wind direction  – eight compass points
* day / night     – sunrise ≤ now < sunset, else a 06:00–20:00 window
* visibility      – missing/invalid values replaced by the 10 km maximum
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Final

from dateutil import tz

from .models import DerivedMetrics, WeatherSnapshot

LOG = logging.getLogger("metrics")

# ── Constants ─────────────────────────────────────────────────────────────
HEAT_INDEX_MIN_F: Final = 80.0
HEAT_INDEX_MIN_RH: Final = 40.0

REFERENCE_NEW_MOON: Final = dt.datetime(2000, 1, 6, 18, 14, tzinfo=tz.UTC)
SYNODIC_MONTH_DAYS: Final = 29.530588853

# (upper bound of fractional phase, name); ±2.5 % around the named instants
MOON_PHASES: Final = (
    (0.025, "New Moon"),
    (0.225, "Waxing Crescent"),
    (0.275, "First Quarter"),
    (0.475, "Waxing Gibbous"),
    (0.525, "Full Moon"),
    (0.725, "Waning Gibbous"),
    (0.775, "Last Quarter"),
    (0.975, "Waning Crescent"),
)

COMPASS_POINTS: Final = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")
SECTOR_DEG: Final = 360.0 / len(COMPASS_POINTS)

DAY_START_HOUR: Final = 6
DAY_END_HOUR: Final = 20

MAX_VISIBILITY_M: Final = 10_000
METERS_PER_MILE: Final = 1609.34


# ── Units ─────────────────────────────────────────────────────────────────
def temp_unit(units: str) -> str:
    return "°F" if units == "imperial" else "°C"


def wind_unit(units: str) -> str:
    return "mph" if units == "imperial" else "km/h"


def c_to_f(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def f_to_c(fahrenheit: float) -> float:
    return (fahrenheit - 32) * 5 / 9


# ── Heat index ────────────────────────────────────────────────────────────
def heat_index(temperature: float, humidity: float, units: str = "metric") -> float | None:
    """
    Apparent temperature via the Rothfusz regression.

    Returns ``None`` (not zero) unless the temperature exceeds 80 °F *and*
    relative humidity exceeds 40 %. The result is in the caller's *units*.
    """
    temp_f = temperature if units == "imperial" else c_to_f(temperature)
    if not (temp_f > HEAT_INDEX_MIN_F and humidity > HEAT_INDEX_MIN_RH):
        return None

    t, rh = temp_f, float(humidity)
    hi_f = (
        -42.379
        + 2.04901523 * t
        + 10.14333127 * rh
        - 0.22475541 * t * rh
        - 0.00683783 * t * t
        - 0.05481717 * rh * rh
        + 0.00122874 * t * t * rh
        + 0.00085282 * t * rh * rh
        - 0.00000199 * t * t * rh * rh
    )
    return hi_f if units == "imperial" else f_to_c(hi_f)


# ── Moon phase ────────────────────────────────────────────────────────────
def moon_fraction(when: dt.datetime) -> float:
    """Fraction of the synodic month elapsed at *when* (0 = new moon)."""
    if when.tzinfo is None:
        when = when.replace(tzinfo=tz.UTC)
    days = (when - REFERENCE_NEW_MOON).total_seconds() / 86400.0
    return (days % SYNODIC_MONTH_DAYS) / SYNODIC_MONTH_DAYS


def moon_phase(when: dt.datetime) -> str:
    frac = moon_fraction(when)
    for upper, name in MOON_PHASES:
        if frac < upper:
            return name
    return "New Moon"  # 97.5 – 100 %


# ── Wind ──────────────────────────────────────────────────────────────────
def wind_direction(degrees: float) -> str:
    """
    Compass point for a bearing. Each point owns the 45° sector centred on
    its own bearing, so N covers 337.5° up to 22.5° and 23° is already NE.
    """
    index = int(((degrees % 360.0) + SECTOR_DEG / 2) // SECTOR_DEG)
    return COMPASS_POINTS[index % len(COMPASS_POINTS)]


# ── Day / night ───────────────────────────────────────────────────────────
def is_daytime(
    local_time: dt.datetime,
    sunrise: dt.datetime | None = None,
    sunset: dt.datetime | None = None,
) -> bool:
    """
    Daytime iff ``sunrise <= local_time < sunset``.

    Without both timestamps the fixed 06:00–20:00 local window is used and
    the approximation is logged.
    """
    if sunrise is not None and sunset is not None:
        return sunrise <= local_time < sunset

    LOG.info(
        "[degraded] no sunrise/sunset – using %02d:00–%02d:00 window",
        DAY_START_HOUR,
        DAY_END_HOUR,
    )
    return DAY_START_HOUR <= local_time.hour < DAY_END_HOUR


def day_length_hours(
    sunrise: dt.datetime | None, sunset: dt.datetime | None
) -> float | None:
    if sunrise is None or sunset is None:
        return None
    seconds = (sunset - sunrise).total_seconds()
    return seconds / 3600.0 if seconds > 0 else None


# ── Visibility ────────────────────────────────────────────────────────────
def format_visibility(meters: float | None, units: str = "metric") -> str:
    """Human text for a visibility in metres; bad values mean "maximum"."""
    if meters is None or meters <= 0:
        LOG.debug("Visibility missing or non-positive (%r) – using default", meters)
        meters = MAX_VISIBILITY_M

    if meters >= MAX_VISIBILITY_M:
        return "6.2+ miles (excellent)" if units == "imperial" else "10+ km (excellent)"
    if units == "imperial":
        return f"{meters / METERS_PER_MILE:.1f} miles"
    return f"{meters / 1000:.1f} km"


# ── Bundle ────────────────────────────────────────────────────────────────
def derive(snapshot: WeatherSnapshot) -> DerivedMetrics:
    """Compute the derived view for *snapshot*."""
    return DerivedMetrics(
        heat_index=heat_index(snapshot.temperature, snapshot.humidity_pct, snapshot.units),
        moon_phase=moon_phase(snapshot.local_time),
        wind_direction=wind_direction(snapshot.wind_direction_deg),
        day_length_hours=day_length_hours(snapshot.sunrise, snapshot.sunset),
        visibility_text=format_visibility(snapshot.visibility_m, snapshot.units),
    )
