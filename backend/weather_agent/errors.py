"""
errors.py
~~~~~~~~~
Failure taxonomy for the update pipeline.

* ``ResolutionError`` – geocoding exhausted its chain (absorbed: a default
  location is substituted).
* ``UpstreamError``   – weather / AQI provider unreachable or non-2xx. Only the
  weather fetch lets it abort a tick.
* ``GenerationError`` – the language model produced nothing usable.
* ``DegradedData``    – a field could not be parsed; the caller approximates.
"""

from __future__ import annotations


class WeatherAgentError(RuntimeError):
    """Base class for every pipeline failure."""


class ResolutionError(WeatherAgentError):
    """Raised when no geocoding provider yields a result."""


class UpstreamError(WeatherAgentError):
    """Raised when an upstream data provider fails."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status: int | None = None,
        coords: tuple[float, float] | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status = status
        self.coords = coords

    def __str__(self) -> str:
        parts = [f"{self.provider}: {self.args[0]}"]
        if self.status is not None:
            parts.append(f"status={self.status}")
        if self.coords is not None:
            parts.append("coords=(%.4f, %.4f)" % self.coords)
        return " ".join(parts)


class GenerationError(WeatherAgentError):
    """Raised when the language-model backend fails."""

    def __init__(
        self, message: str, *, provider: str = "", status: int | None = None
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status = status


class DegradedData(WeatherAgentError):
    """A value could not be computed or parsed and must be approximated."""
