"""Bounded concurrency for calls against a listing source.

Same pattern as the enrichment pipeline: a semaphore caps how many fetches
are in flight at once. Waiters are woken in whatever order the event loop
picks; no FIFO promise is made.
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")

DEFAULT_MAX_CONCURRENT = 3


class ConcurrencyLimiter:
    """Runs coroutines with at most ``max_concurrent`` in flight."""

    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._in_flight = 0

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Wait for a free slot, then await ``fn()``.

        The slot is released whether ``fn`` returns or raises; exceptions
        reach the caller untouched.
        """
        async with self._semaphore:
            self._in_flight += 1
            try:
                return await fn()
            finally:
                self._in_flight -= 1

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent
