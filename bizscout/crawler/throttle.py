# bizscout/crawler/throttle.py
"""
Minimum-interval rate limiter for the managed crawl API.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Serializes callers so that consecutive calls are at least *interval* seconds apart.

    The clock and the sleep coroutine are injectable so tests can drive time
    without waiting on the wall clock.
    """

    def __init__(
        self,
        interval: float,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_call: float | None = None
        self.logger = logging.getLogger("BizScout")

    async def acquire(self) -> None:
        async with self._lock:
            if self._last_call is not None:
                wait = self.interval - (self._clock() - self._last_call)
                if wait > 0:
                    self.logger.debug("Rate limit: waiting %.2f s", wait)
                    await self._sleep(wait)
            self._last_call = self._clock()
