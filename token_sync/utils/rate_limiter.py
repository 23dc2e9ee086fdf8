import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, TypeVar

log = logging.getLogger("rate_limiter")

T = TypeVar("T")


class RateLimiter:
    """
    Sliding-window limiter for a single upstream.
    At most `max_calls` calls are let through in any trailing `window` seconds,
    measured backwards from now (not aligned to wall-clock seconds).
    Calls are never rejected, only delayed.
    """

    def __init__(self, max_calls: int, window: float = 1.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._max_calls = max(1, int(max_calls))
        self._window = float(window)
        self._clock = clock
        self._calls: deque[float] = deque()
        self._lock = asyncio.Lock()

    @property
    def max_calls(self) -> int:
        return self._max_calls

    def _purge(self, now: float) -> None:
        while self._calls and self._calls[0] + self._window <= now:
            self._calls.popleft()

    async def acquire(self) -> None:
        # The lock is held through the wait so callers are admitted strictly one by one.
        async with self._lock:
            self._purge(self._clock())
            while len(self._calls) >= self._max_calls:
                wait = self._calls[0] + self._window - self._clock()
                if wait > 0:
                    log.debug("quota of %d/%.1fs reached, waiting %.3fs", self._max_calls, self._window, wait)
                    await asyncio.sleep(wait)
                self._purge(self._clock())
            self._calls.append(self._clock())

    async def call(self, fn: Callable[[], Awaitable[T]]) -> T:
        await self.acquire()
        return await fn()
