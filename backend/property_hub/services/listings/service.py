"""Listing search with caching and bounded source concurrency.

Multi-layer caching, same shape as the discover pipeline:
1. In-memory ExpiringCache (instant, process-level)
2. Redis (optional, cross-process) when a CacheService is configured
3. Property source fetch, throttled by the ConcurrencyLimiter

Query results are cached for the cache's default TTL (5 minutes); single
listings for 10 minutes. Empty results are cached; unknown ids are not.
Callers always get their own list, never the cached one.
"""

import logging
import time

from property_hub.models import Listing, ListingFilters
from property_hub.services.cache import CacheService
from property_hub.utils.cache import ExpiringCache
from property_hub.utils.geo import filter_within_radius
from property_hub.utils.limiter import ConcurrencyLimiter

from .sources import PropertySource

logger = logging.getLogger(__name__)

LISTING_TTL_SECONDS = 600


def apply_filters(listings: list[Listing], filters: ListingFilters) -> list[Listing]:
    """Filter listings in order: city, type, price band, radius, limit."""
    result = list(listings)

    if filters.city:
        city = filters.city.lower()
        result = [l for l in result if l.city and city in l.city.lower()]

    if filters.property_type is not None:
        result = [l for l in result if l.property_type == filters.property_type]

    if filters.min_price is not None:
        result = [l for l in result if (l.price or 0) >= filters.min_price]

    if filters.max_price is not None:
        result = [l for l in result if (l.price or 0) <= filters.max_price]

    if filters.has_geo:
        result = filter_within_radius(
            result, filters.latitude, filters.longitude, filters.radius_km  # type: ignore[arg-type]
        )

    if filters.limit is not None:
        result = result[: filters.limit]

    return result


class ListingService:
    """Cache-and-coordinate front for a property source."""

    def __init__(
        self,
        source: PropertySource,
        cache: ExpiringCache,
        limiter: ConcurrencyLimiter,
        shared_cache: CacheService | None = None,
    ) -> None:
        self._source = source
        self._cache = cache
        self._limiter = limiter
        self._shared_cache = shared_cache

    async def _shared_get(self, key: str) -> list | dict | None:
        if self._shared_cache is None:
            return None
        try:
            return await self._shared_cache.get(key)
        except Exception as e:
            logger.warning(f"[LISTINGS] Redis read failed for {key}: {e}")
            return None

    async def _shared_set(self, key: str, value: list | dict, ttl: int) -> None:
        if self._shared_cache is None:
            return
        try:
            await self._shared_cache.set(key, value, ttl_seconds=ttl)
        except Exception as e:
            logger.warning(f"[LISTINGS] Redis write failed for {key}: {e}")

    async def search(self, filters: ListingFilters | None = None) -> list[Listing]:
        """Return listings matching ``filters``, from cache when fresh."""
        filters = filters or ListingFilters()
        start = time.time()
        cache_key = filters.cache_key()

        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.info(f"[LISTINGS] Cache HIT (memory) for {cache_key} ({(time.time() - start) * 1000:.0f}ms)")
            return list(cached)

        shared = await self._shared_get(cache_key)
        if shared is not None:
            listings = [Listing.model_validate(item) for item in shared]
            self._cache.set(cache_key, list(listings))
            logger.info(f"[LISTINGS] Cache HIT (redis) for {cache_key}")
            return listings

        logger.info(f"[LISTINGS] Cache MISS for {cache_key}, querying {self._source.name} source")

        async def fetch() -> list[Listing]:
            return apply_filters(await self._source.fetch_listings(), filters)

        listings = await self._limiter.run(fetch)
        self._cache.set(cache_key, list(listings))
        await self._shared_set(
            cache_key,
            [l.model_dump(mode="json") for l in listings],
            int(self._cache.default_ttl),
        )
        logger.info(f"[LISTINGS] Cached {len(listings)} listings ({time.time() - start:.2f}s)")
        return listings

    async def search_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_km: float = 5,
        limit: int = 20,
    ) -> list[Listing]:
        """Listings within ``radius_km`` of a point."""
        return await self.search(
            ListingFilters(latitude=latitude, longitude=longitude, radius_km=radius_km, limit=limit)
        )

    async def get_by_id(self, listing_id: str) -> Listing | None:
        cache_key = CacheService.build_listing_key(listing_id)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        shared = await self._shared_get(cache_key)
        if shared is not None:
            listing = Listing.model_validate(shared)
            self._cache.set(cache_key, listing, LISTING_TTL_SECONDS)
            return listing

        listing = await self._limiter.run(lambda: self._source.fetch_listing(listing_id))
        if listing is not None:
            self._cache.set(cache_key, listing, LISTING_TTL_SECONDS)
            await self._shared_set(cache_key, listing.model_dump(mode="json"), LISTING_TTL_SECONDS)
        return listing

    async def sync(self) -> list[Listing]:
        """Refetch everything from the source and drop all cached results."""

        async def fetch() -> list[Listing]:
            listings = await self._source.fetch_listings()
            await self.clear_cache()
            return listings

        listings = await self._limiter.run(fetch)
        logger.info(f"[LISTINGS] Synced {len(listings)} listings from {self._source.name} source")
        return listings

    async def test_connection(self) -> bool:
        return await self._source.ping()

    async def clear_cache(self) -> None:
        self._cache.clear()
        if self._shared_cache is not None:
            try:
                for pattern in ("listings:*", "listing:*"):
                    await self._shared_cache.invalidate(pattern)
            except Exception as e:
                logger.warning(f"[LISTINGS] Redis invalidate failed: {e}")

    def sweep_expired(self) -> int:
        return self._cache.clear_expired()
