"""In-memory cache with per-entry TTL expiration.

Process-level cache for listing queries. Lives as long as the worker does.
Default TTL: 5 minutes. Expired entries are dropped on read, and a
background sweep clears whatever nobody reads again.
"""

import asyncio
import logging
import time
from typing import Any, Callable, NamedTuple

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


class CacheEntry(NamedTuple):
    data: Any
    timestamp: float
    expires_in: float


class ExpiringCache:
    """TTL-aware key/value cache.

    An entry is valid while ``now - timestamp <= expires_in``. Reading an
    expired entry removes it, so "never cached" and "expired" both come
    back as ``None``.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._clock = clock

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > entry.expires_in

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            return None
        return entry.data

    def set(self, key: str, data: Any, ttl: float | None = None) -> None:
        expires_in = self._default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(data, self._clock(), expires_in)

    def clear(self) -> None:
        self._entries.clear()

    def clear_expired(self) -> int:
        """Drop every expired entry.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and not self._is_expired(entry, self._clock())

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def default_ttl(self) -> float:
        """Get the default TTL in seconds."""
        return self._default_ttl


async def sweep_periodically(cache: ExpiringCache, interval: float) -> None:
    """Call ``cache.clear_expired()`` every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        removed = cache.clear_expired()
        if removed:
            logger.info(f"[CACHE] Swept {removed} expired entries")
