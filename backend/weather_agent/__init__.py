"""weather_agent – live weather + air quality snapshots narrated by an LLM."""
