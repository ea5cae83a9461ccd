"""
message_service.py
~~~~~~~~~~~~~~~~~~
Turn a snapshot (plus the previous reading) into a natural-language summary.

Dedup state machine
-------------------
::

    GENERATED ──(same text as last time)──▶ DUPLICATE_DETECTED
        DUPLICATE_DETECTED ──(retry differs)──────────▶ RETRIED
        DUPLICATE_DETECTED ──(retry fails or matches)─▶ DISAMBIGUATED

At most one extra generation call per tick. A disambiguated message is the
original text prefixed with the local ``[HH:MM]`` stamp.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Final

from dateutil import tz

from .errors import GenerationError
from .history import HistoryBuffer
from .llm_service import LLMBackend
from .metrics import temp_unit, wind_unit
from .models import ComposedMessage, ComposeState, WeatherSnapshot
from .snapshot_service import time_12h, time_24h, weather_data

LOG = logging.getLogger("message_service")

VARIATION_REQUEST: Final = (
    "\nIMPORTANT: Please generate a completely different message than before."
)

TIME_BLOCK: Final = """IMPORTANT TIME INFORMATION:
The CURRENT LOCAL TIME in {city} is {time12} ({time24} in 24-hour format).
This is the accurate local time for this location.
DO NOT convert or adjust this time. It is already the correct local time.
You MUST use this exact time in your weather message.
"""

CLOSING_INSTRUCTIONS: Final = """
Based on this weather data, generate a helpful, informative, and engaging message about the current weather. Make it natural and conversational.

Consider all the weather details provided, such as temperature, humidity, wind, precipitation, visibility, cloud cover, air quality, and astronomical information when relevant. If there are any notable weather conditions (extreme temperatures, storms, poor air quality, etc.), highlight those.

You can mention interesting weather facts or patterns if they're relevant to the current conditions. For example, if it's a full moon on a clear night, or if it's an unusually warm/cold day for the season.

If air quality information is provided, include health recommendations based on the AQI level.

CRITICAL: The current local time in {city} is {time12}. DO NOT modify or reinterpret this time. Reference this EXACT time in your response."""


def history_digest(previous: WeatherSnapshot | None) -> str:
    """Short text summary of the preceding reading ("" when there is none)."""
    if previous is None:
        return ""
    t_unit = temp_unit(previous.units)
    return (
        f"Previous weather ({time_24h(previous.local_time)}):\n"
        f"- Condition: {previous.condition_label} ({previous.description})\n"
        f"- Temperature: {previous.temperature:.1f}{t_unit} "
        f"(feels like {previous.feels_like:.1f}{t_unit})\n"
        f"- Humidity: {previous.humidity_pct}%\n"
        f"- Wind: {previous.wind_speed:.1f} {wind_unit(previous.units)}\n"
    )


def build_prompt(snapshot: WeatherSnapshot, history_context: str = "") -> str:
    """User message: time block, every data field, history, instructions."""
    city = snapshot.location.name
    local = snapshot.local_time
    time12, time24 = time_12h(local), time_24h(local)

    lines = ["Current Weather Data:", TIME_BLOCK.format(city=city, time12=time12, time24=time24)]
    lines.append(f"city: {city}")
    lines.append(f"country: {snapshot.location.country_code}")
    lines.append(f"current_local_time: {time12} ({time24} in 24-hour format)")
    lines.append(f"is_daytime_or_night: {'DAYTIME' if snapshot.is_daytime else 'NIGHTTIME'}")
    lines.extend(f"{key}: {value}" for key, value in weather_data(snapshot).items())

    prompt = "\n".join(lines) + "\n"
    if history_context:
        prompt += "\n\nWeather history context:\n" + history_context
    prompt += CLOSING_INSTRUCTIONS.format(city=city, time12=time12)
    return prompt


class MessageComposer:
    """Generate one message per tick, never repeating the previous one verbatim."""

    def __init__(self, backend: LLMBackend) -> None:
        self.backend = backend

    async def _generate(self, snapshot: WeatherSnapshot, history_context: str) -> str:
        return await self.backend.generate(build_prompt(snapshot, history_context))

    async def compose(
        self,
        snapshot: WeatherSnapshot,
        history: HistoryBuffer,
        previous_text: str | None = None,
    ) -> ComposedMessage:
        """
        Raises:
            GenerationError: when the first generation call fails.
        """
        context = history_digest(history.previous())
        text = await self._generate(snapshot, context)
        now = dt.datetime.now(tz.UTC)

        if previous_text is None or text.strip() != previous_text.strip():
            return ComposedMessage(text=text, generated_at=now, state=ComposeState.GENERATED)

        state = ComposeState.DUPLICATE_DETECTED
        LOG.info("[%s] retrying once with a variation request", state.value)
        try:
            retry = await self._generate(snapshot, context + VARIATION_REQUEST)
        except GenerationError as exc:
            LOG.warning("Variation retry failed: %s", exc)
            retry = None

        if retry is not None and retry.strip() != previous_text.strip():
            state = ComposeState.RETRIED
            text = retry
        else:
            state = ComposeState.DISAMBIGUATED
            text = f"[{time_24h(snapshot.local_time)}] {text}"
            LOG.info("Retry still identical – disambiguated with local time stamp")

        return ComposedMessage(
            text=text, generated_at=dt.datetime.now(tz.UTC), state=state
        )


__all__ = ["MessageComposer", "build_prompt", "history_digest", "VARIATION_REQUEST"]
