"""
api_logging.py
~~~~~~~~~~~~~~
Every outbound call (weather, geocoding, air quality, language model) goes
through :func:`logged_request_async`, which leaves exactly one line on the
``extapi`` logger:

    GET https://api.open-meteo.com/v1/forecast?latitude=… → 200 (84 ms)
    FAIL GET https://api.airvisual.com/v2/nearest_city?key=*** 5003 ms ReadTimeout(…)

Secrets travelling in query strings (IQAir ``key``, OpenWeatherMap ``appid``)
are masked before anything reaches the log.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any

import httpx

LOG = logging.getLogger("extapi")

SECRET_PARAMS = ("key", "appid", "api_key")
_SECRET_RE = re.compile(r"([?&](?:%s)=)[^&]*" % "|".join(SECRET_PARAMS), re.I)


def redact(url: str) -> str:
    """Mask secret query parameters in *url* – ``?key=abc`` → ``?key=***``."""
    return _SECRET_RE.sub(r"\1***", url)


def _describe(url: str, params: Any) -> str:
    if params:
        try:
            url = str(httpx.URL(url, params=params))
        except Exception:  # noqa: BLE001 – logging must never break a request
            pass
    return redact(url)


def _elapsed_ms(t0: float) -> float:
    return (time.perf_counter() - t0) * 1000.0


async def logged_request_async(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *args: Any,
    raise_for_status: bool = True,
    **kwargs: Any,
) -> httpx.Response:
    """
    Await ``client.<method>(url, …)`` and log the outcome.

    4xx answers are INFO (providers use them for "nothing here" as often as
    for real mistakes); 5xx answers are WARNING and, unless
    ``raise_for_status=False``, raised as :class:`httpx.HTTPStatusError`.
    Transport errors are logged as ``FAIL`` and re-raised unchanged.
    """
    verb = method.upper()
    shown = _describe(url, kwargs.get("params"))
    t0 = time.perf_counter()
    try:
        response = await getattr(client, method.lower())(url, *args, **kwargs)
    except Exception as exc:
        LOG.warning("FAIL %s %s %.0f ms %s", verb, shown, _elapsed_ms(t0), exc)
        raise

    server_error = response.status_code >= 500
    LOG.log(
        logging.WARNING if server_error else logging.INFO,
        "%s %s → %s (%.0f ms)",
        verb,
        shown,
        response.status_code,
        _elapsed_ms(t0),
    )
    if server_error and raise_for_status:
        response.raise_for_status()
    return response


__all__ = ["logged_request_async", "redact"]
