"""Second-level cache for listing queries.

The in-memory ExpiringCache is per worker. When REDIS_URL is set, query
results are also written to Redis so other workers (and restarts) can
reuse them. Values are JSON documents; keys share the in-memory key format
so both layers stay consistent.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

import redis.asyncio as redis


class CacheService(ABC):
    """Abstract base class for shared cache backends."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Retrieve cached value by key.

        Args:
            key: The cache key to look up.

        Returns:
            The cached value if found, None otherwise.
        """

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store a JSON-serializable value with an optional TTL."""

    @abstractmethod
    async def invalidate(self, pattern: str) -> int:
        """Delete every key matching a glob pattern and return the count."""

    @staticmethod
    def build_listing_key(listing_id: str) -> str:
        """Generate cache key for a single listing.

        Example:
            >>> CacheService.build_listing_key("demo-1")
            'listing:demo-1'
        """
        return f"listing:{listing_id}"


class RedisCacheService(CacheService):
    """Redis-based implementation of the shared cache.

    Attributes:
        _client: The Redis async client instance.
        _default_ttl: Default TTL in seconds for cached values.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        default_ttl: int = 300,
        client: redis.Redis | None = None,
    ) -> None:
        self._redis_url = redis_url
        self._default_ttl = default_ttl
        self._client = client

    async def connect(self) -> None:
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_connected(self) -> redis.Redis:
        if self._client is None:
            await self.connect()
        return self._client  # type: ignore

    async def get(self, key: str) -> Any | None:
        client = await self._ensure_connected()
        value = await client.get(key)
        if value is None:
            return None
        return json.loads(value)

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        client = await self._ensure_connected()
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        await client.set(key, json.dumps(value), ex=ttl)

    async def invalidate(self, pattern: str) -> int:
        """Invalidate entries matching pattern.

        Uses SCAN rather than KEYS so large keyspaces don't block Redis.
        """
        client = await self._ensure_connected()
        deleted_count = 0
        cursor = 0
        while True:
            cursor, keys = await client.scan(cursor=cursor, match=pattern, count=100)
            if keys:
                deleted_count += await client.delete(*keys)
            if cursor == 0:
                break
        return deleted_count

    @property
    def default_ttl(self) -> int:
        """Get the default TTL in seconds."""
        return self._default_ttl
