"""
tests/integration/conftest.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Live-API tests are opt-in: everything under ``tests/integration/`` is skipped
unless ``INTEGRATION_TESTS=1``.

    pytest -q                                     # offline suite only
    INTEGRATION_TESTS=1 pytest tests/integration  # live providers
"""

from __future__ import annotations

import os

import pytest


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.getenv("INTEGRATION_TESTS") == "1":
        return

    skip = pytest.mark.skip(reason="live API test (set INTEGRATION_TESTS=1 to run)")
    for item in items:
        if "integration" in item.path.parts:
            item.add_marker(skip)


@pytest.fixture
def integration_timeout() -> float:
    """Generous per-call timeout for live providers (seconds)."""
    return 20.0
