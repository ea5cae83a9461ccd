"""
known_cities.py
~~~~~~~~~~~~~~~
Hand-curated centroids of major cities, the last resort of reverse
geocoding when both online providers come back empty.

``radius`` is in **degrees** (planar distance on lat/lon), generous enough to
cover each metro area without overlapping its neighbours.
"""

KNOWN_CITIES: list[dict[str, float | str]] = [
    # ─── North America ────────────────────────────────────────────────
    {"name": "New York", "country": "US", "lat": 40.7128, "lon": -74.0060, "radius": 0.5},
    {"name": "Los Angeles", "country": "US", "lat": 34.0522, "lon": -118.2437, "radius": 0.5},
    {"name": "Chicago", "country": "US", "lat": 41.8781, "lon": -87.6298, "radius": 0.3},
    {"name": "Toronto", "country": "CA", "lat": 43.6532, "lon": -79.3832, "radius": 0.3},
    # ─── Europe ───────────────────────────────────────────────────────
    {"name": "London", "country": "GB", "lat": 51.5074, "lon": -0.1278, "radius": 0.3},
    {"name": "Paris", "country": "FR", "lat": 48.8566, "lon": 2.3522, "radius": 0.3},
    # ─── Asia-Pacific ─────────────────────────────────────────────────
    {"name": "Tokyo", "country": "JP", "lat": 35.6762, "lon": 139.6503, "radius": 0.5},
    {"name": "Sydney", "country": "AU", "lat": -33.8688, "lon": 151.2093, "radius": 0.3},
]
