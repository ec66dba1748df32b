"""Client-side request ceiling for the osu! API.

Sliding window over the timestamps of recent requests. Callers wait
until a slot frees up instead of being rejected.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable


class RateLimiter:
    """Allow at most ``limit`` acquisitions per ``window`` seconds."""

    def __init__(
        self,
        limit: int,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if limit <= 0 or window <= 0:
            raise ValueError("limit and window must be positive")
        self._limit = limit
        self._window = window
        self._clock = clock
        self._sleep = sleep
        self._requests: deque[float] = deque()
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            while True:
                now = self._clock()

                # Drop requests that left the window
                while self._requests and self._requests[0] <= now - self._window:
                    self._requests.popleft()

                if len(self._requests) < self._limit:
                    self._requests.append(now)
                    return

                await self._sleep(self._requests[0] + self._window - now)
