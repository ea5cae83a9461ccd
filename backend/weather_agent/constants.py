# backend/weather_agent/constants.py

"""
Global constants shared across modules: the outbound User-Agent and the
fixed fallback location used whenever forward geocoding fails.
"""

USER_AGENT = "weather-agent/1.0 (+https://github.com/weather-agent/weather-agent)"

# London – substituted when the configured place cannot be resolved.
DEFAULT_CITY = "London"
DEFAULT_COUNTRY = "GB"
DEFAULT_LAT = 51.5074
DEFAULT_LON = -0.1278

HISTORY_CAPACITY = 24
