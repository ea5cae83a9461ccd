"""
history.py
~~~~~~~~~~
Rolling window of the most recent snapshots (FIFO, capacity 24).
"""

from __future__ import annotations

from collections import deque
from typing import Iterator

from .constants import HISTORY_CAPACITY
from .models import WeatherSnapshot


class HistoryBuffer:
    def __init__(self, capacity: int = HISTORY_CAPACITY) -> None:
        self._items: deque[WeatherSnapshot] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._items.maxlen or 0

    def push(self, snapshot: WeatherSnapshot) -> None:
        """Append *snapshot*; the oldest entry is evicted once full."""
        self._items.append(snapshot)

    def previous(self) -> WeatherSnapshot | None:
        """The second-to-last snapshot, or ``None`` with fewer than two."""
        return self._items[-2] if len(self._items) >= 2 else None

    def latest(self) -> WeatherSnapshot | None:
        return self._items[-1] if self._items else None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[WeatherSnapshot]:
        return iter(tuple(self._items))
