"""Sliding-window throughput tracker for ETA estimates.

Keeps the timestamps of the last ``capacity`` completed units in a ring
buffer. The estimate is the average time per unit over that window
multiplied by the number of remaining units.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import timedelta

BACKLOG_LEN = 200
MIN_SAMPLES = 20


class TimeEstimate:
    """An optional duration, rendered as ``1h2m3s`` or ``N/A``."""

    def __init__(self, duration: timedelta | None = None) -> None:
        self.duration = duration

    def as_seconds(self) -> int | None:
        if self.duration is None:
            return None
        return int(self.duration.total_seconds())

    def __str__(self) -> str:
        secs = self.as_seconds()
        if secs is None:
            return "N/A"

        hours, secs = divmod(secs, 3600)
        minutes, secs = divmod(secs, 60)

        if hours > 0:
            return f"{hours}h{minutes}m{secs}s"
        if minutes > 0:
            return f"{minutes}m{secs}s"
        return f"{secs}s"

    def __repr__(self) -> str:
        return f"TimeEstimate({self})"


class Eta:
    """Fixed-capacity ring buffer of completion timestamps."""

    def __init__(
        self,
        capacity: int = BACKLOG_LEN,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._clock = clock
        now = clock()
        self._queue = [now] * capacity
        # Index of the last written slot; the first tick writes slot 0
        self._end = capacity - 1
        self._len = 0

    def __len__(self) -> int:
        return self._len

    def tick(self) -> None:
        """Record the completion of one unit of work."""
        self._end = (self._end + 1) % self._capacity
        self._queue[self._end] = self._clock()
        if self._len < self._capacity:
            self._len += 1

    def estimate(self, remaining: int) -> TimeEstimate:
        if self._len < MIN_SAMPLES:
            return TimeEstimate()

        last = self._queue[self._end]
        # Once wrapped, the oldest sample sits right after the cursor
        first_idx = (self._end + 1) % self._capacity if self._len == self._capacity else 0
        first = self._queue[first_idx]

        per_unit = (last - first) / self._len
        return TimeEstimate(timedelta(seconds=per_unit * remaining))
