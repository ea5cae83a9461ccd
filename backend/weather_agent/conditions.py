"""
conditions.py
~~~~~~~~~~~~~
WMO weather interpretation codes → condition label + human description.

Labels are bucketed by code range; descriptions are looked up per exact code
and fall back to ``"unknown conditions"``. Pure, total, never raises.
"""

from __future__ import annotations

from typing import NamedTuple


class Condition(NamedTuple):
    label: str
    description: str


UNKNOWN_LABEL = "Unknown"
UNKNOWN_DESCRIPTION = "unknown conditions"

# (low, high, label) – inclusive ranges, first match wins
_LABEL_RANGES: tuple[tuple[int, int, str], ...] = (
    (0, 0, "Clear"),
    (1, 1, "Mainly Clear"),
    (2, 3, "Clouds"),
    (45, 49, "Fog"),
    (51, 59, "Drizzle"),
    (61, 69, "Rain"),
    (71, 79, "Snow"),
    (80, 82, "Rain showers"),
    (85, 86, "Snow showers"),
    (95, 99, "Thunderstorm"),
)

CONDITION_LABELS: frozenset[str] = frozenset(
    [label for _, _, label in _LABEL_RANGES] + [UNKNOWN_LABEL]
)

DESCRIPTIONS: dict[int, str] = {
    0: "clear sky",
    1: "mainly clear",
    2: "partly cloudy",
    3: "overcast",
    45: "fog",
    48: "depositing rime fog",
    51: "light drizzle",
    53: "moderate drizzle",
    55: "dense drizzle",
    56: "light freezing drizzle",
    57: "dense freezing drizzle",
    61: "slight rain",
    63: "moderate rain",
    65: "heavy rain",
    66: "light freezing rain",
    67: "heavy freezing rain",
    71: "slight snow fall",
    73: "moderate snow fall",
    75: "heavy snow fall",
    77: "snow grains",
    80: "slight rain showers",
    81: "moderate rain showers",
    82: "violent rain showers",
    85: "slight snow showers",
    86: "heavy snow showers",
    95: "thunderstorm",
    96: "thunderstorm with hail",
    99: "thunderstorm with hail",
}


def condition_label(code: int) -> str:
    for low, high, label in _LABEL_RANGES:
        if low <= code <= high:
            return label
    return UNKNOWN_LABEL


def condition_description(code: int) -> str:
    return DESCRIPTIONS.get(code, UNKNOWN_DESCRIPTION)


def map_condition(code: int) -> Condition:
    """Return ``(label, description)`` for WMO *code*."""
    return Condition(condition_label(code), condition_description(code))
