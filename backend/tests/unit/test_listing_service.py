"""Unit tests for the listing service.

Runs against the demo source (five listings: Lisboa x2, Porto, Braga,
Coimbra) with a fake clock so cache expiry is deterministic.
"""

import asyncio
from typing import Any

import pytest

from property_hub.models import Listing, ListingFilters, PropertyType
from property_hub.services.cache import CacheService
from property_hub.services.listings import (
    DemoPropertySource,
    ListingService,
    ListingSourceError,
    apply_filters,
)
from property_hub.utils.cache import ExpiringCache
from property_hub.utils.limiter import ConcurrencyLimiter

LISBON = (38.7223, -9.1393)


class InMemorySharedCache(CacheService):
    """Dict-backed stand-in for the Redis layer."""

    def __init__(self, fail: bool = False) -> None:
        self.store: dict[str, Any] = {}
        self.fail = fail

    async def get(self, key: str) -> Any | None:
        if self.fail:
            raise ConnectionError("redis down")
        return self.store.get(key)

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        if self.fail:
            raise ConnectionError("redis down")
        self.store[key] = value

    async def invalidate(self, pattern: str) -> int:
        prefix = pattern.rstrip("*")
        keys = [k for k in self.store if k.startswith(prefix)]
        for key in keys:
            del self.store[key]
        return len(keys)


class FailingSource(DemoPropertySource):
    async def fetch_listings(self) -> list[Listing]:
        raise ListingSourceError("provider returned 503", status_code=503)


def _service(source, clock=None, shared=None, max_concurrent: int = 3) -> ListingService:
    cache = ExpiringCache(clock=clock) if clock else ExpiringCache()
    return ListingService(source, cache, ConcurrencyLimiter(max_concurrent), shared_cache=shared)


class TestApplyFilters:

    def setup_method(self) -> None:
        self.listings = DemoPropertySource()._listings

    def test_no_filters_returns_everything(self) -> None:
        assert len(apply_filters(self.listings, ListingFilters())) == 5

    def test_city_is_case_insensitive_substring(self) -> None:
        result = apply_filters(self.listings, ListingFilters(city="LIS"))
        assert [l.id for l in result] == ["demo-1", "demo-5"]

    def test_property_type(self) -> None:
        result = apply_filters(self.listings, ListingFilters(property_type=PropertyType.HOUSE))
        assert [l.id for l in result] == ["demo-2", "demo-4"]

    def test_price_band(self) -> None:
        result = apply_filters(self.listings, ListingFilters(min_price=200000, max_price=400000))
        assert [l.id for l in result] == ["demo-1", "demo-4"]

    def test_radius(self) -> None:
        filters = ListingFilters(latitude=LISBON[0], longitude=LISBON[1], radius_km=5)
        assert [l.id for l in apply_filters(self.listings, filters)] == ["demo-1", "demo-5"]

    def test_limit_applied_last(self) -> None:
        result = apply_filters(self.listings, ListingFilters(property_type="apartment", limit=2))
        assert [l.id for l in result] == ["demo-1", "demo-3"]

    def test_missing_price_counts_as_zero(self) -> None:
        listings = [Listing(id="x", title="No price")]
        assert apply_filters(listings, ListingFilters(max_price=10)) == listings
        assert apply_filters(listings, ListingFilters(min_price=1)) == []


class TestListingServiceSearch:

    @pytest.mark.asyncio
    async def test_repeated_search_hits_source_once(self, source, clock) -> None:
        service = _service(source, clock)
        first = await service.search(ListingFilters(city="Lisboa"))
        second = await service.search(ListingFilters(city="Lisboa"))
        assert first == second
        assert source.list_calls == 1

    @pytest.mark.asyncio
    async def test_mutating_a_result_leaves_the_cache_intact(self, source, clock) -> None:
        service = _service(source, clock)
        first = await service.search(ListingFilters(city="Lisboa"))
        first.clear()
        second = await service.search(ListingFilters(city="Lisboa"))
        assert [l.id for l in second] == ["demo-1", "demo-5"]
        assert source.list_calls == 1

    @pytest.mark.asyncio
    async def test_different_filters_fetch_separately(self, source, clock) -> None:
        service = _service(source, clock)
        await service.search(ListingFilters(city="Lisboa"))
        await service.search(ListingFilters(city="Porto"))
        assert source.list_calls == 2

    @pytest.mark.asyncio
    async def test_expired_result_is_refetched(self, source, clock) -> None:
        service = _service(source, clock)
        await service.search(ListingFilters(city="Braga"))

        clock.now = 100
        await service.search(ListingFilters(city="Braga"))
        assert source.list_calls == 1

        clock.now = 400
        await service.search(ListingFilters(city="Braga"))
        assert source.list_calls == 2

    @pytest.mark.asyncio
    async def test_empty_result_is_cached(self, source, clock) -> None:
        service = _service(source, clock)
        assert await service.search(ListingFilters(city="Faro")) == []
        assert await service.search(ListingFilters(city="Faro")) == []
        assert source.list_calls == 1

    @pytest.mark.asyncio
    async def test_search_nearby(self, source) -> None:
        service = _service(source)
        result = await service.search_nearby(*LISBON, radius_km=5)
        assert {l.id for l in result} == {"demo-1", "demo-5"}

    @pytest.mark.asyncio
    async def test_source_error_propagates_and_is_not_cached(self, clock) -> None:
        service = _service(FailingSource(), clock)
        with pytest.raises(ListingSourceError, match="503"):
            await service.search(ListingFilters(city="Lisboa"))
        assert service._limiter.in_flight == 0
        assert len(service._cache) == 0

    @pytest.mark.asyncio
    async def test_concurrent_searches_are_throttled(self) -> None:
        running = 0
        peak = 0

        class SlowSource(DemoPropertySource):
            async def fetch_listings(self) -> list[Listing]:
                nonlocal running, peak
                running += 1
                peak = max(peak, running)
                await asyncio.sleep(0.01)
                running -= 1
                return await super().fetch_listings()

        service = _service(SlowSource())
        cities = ["Lisboa", "Porto", "Braga", "Coimbra", "Faro", "Évora", "Aveiro"]
        await asyncio.gather(*[service.search(ListingFilters(city=c)) for c in cities])
        assert peak == 3


class TestListingServiceById:

    @pytest.mark.asyncio
    async def test_found_listing_is_cached(self, source) -> None:
        service = _service(source)
        first = await service.get_by_id("demo-2")
        second = await service.get_by_id("demo-2")
        assert first is not None and first.city == "Porto"
        assert second == first
        assert source.item_calls == 1

    @pytest.mark.asyncio
    async def test_missing_listing_is_not_cached(self, source) -> None:
        service = _service(source)
        assert await service.get_by_id("nope") is None
        assert await service.get_by_id("nope") is None
        assert source.item_calls == 2

    @pytest.mark.asyncio
    async def test_listing_ttl_is_ten_minutes(self, source, clock) -> None:
        service = _service(source, clock)
        await service.get_by_id("demo-1")
        clock.now = 599
        await service.get_by_id("demo-1")
        assert source.item_calls == 1
        clock.now = 601
        await service.get_by_id("demo-1")
        assert source.item_calls == 2


class TestListingServiceMaintenance:

    @pytest.mark.asyncio
    async def test_sync_returns_all_and_clears_cache(self, source) -> None:
        service = _service(source)
        await service.search(ListingFilters(city="Lisboa"))
        synced = await service.sync()
        assert len(synced) == 5
        await service.search(ListingFilters(city="Lisboa"))
        assert source.list_calls == 3

    @pytest.mark.asyncio
    async def test_clear_cache(self, source) -> None:
        service = _service(source)
        await service.search()
        await service.clear_cache()
        await service.search()
        assert source.list_calls == 2

    @pytest.mark.asyncio
    async def test_sweep_expired(self, source, clock) -> None:
        service = _service(source, clock)
        await service.search(ListingFilters(city="Porto"))
        await service.get_by_id("demo-3")
        clock.now = 400
        assert service.sweep_expired() == 1

    @pytest.mark.asyncio
    async def test_connection(self, source) -> None:
        assert await _service(source).test_connection() is True


class TestListingServiceSharedCache:

    @pytest.mark.asyncio
    async def test_results_written_to_shared_cache(self, source) -> None:
        shared = InMemorySharedCache()
        service = _service(source, shared=shared)
        await service.search(ListingFilters(city="Porto"))
        key = ListingFilters(city="Porto").cache_key()
        assert shared.store[key][0]["id"] == "demo-2"

    @pytest.mark.asyncio
    async def test_shared_hit_skips_source(self, source) -> None:
        shared = InMemorySharedCache()
        key = ListingFilters(city="Porto").cache_key()
        shared.store[key] = [{"id": "remote-1", "title": "From another worker", "city": "Porto"}]

        service = _service(source, shared=shared)
        result = await service.search(ListingFilters(city="Porto"))

        assert [l.id for l in result] == ["remote-1"]
        assert source.list_calls == 0

    @pytest.mark.asyncio
    async def test_shared_cache_failure_is_a_miss(self, source) -> None:
        service = _service(source, shared=InMemorySharedCache(fail=True))
        result = await service.search(ListingFilters(city="Porto"))
        assert [l.id for l in result] == ["demo-2"]
        assert source.list_calls == 1

    @pytest.mark.asyncio
    async def test_clear_cache_invalidates_shared_layer(self, source) -> None:
        shared = InMemorySharedCache()
        service = _service(source, shared=shared)
        await service.search(ListingFilters(city="Porto"))
        await service.get_by_id("demo-1")
        await service.clear_cache()
        assert shared.store == {}

    @pytest.mark.asyncio
    async def test_clear_cache_only_drops_listing_keys(self, source) -> None:
        shared = InMemorySharedCache()
        shared.store["listingsXYZ"] = "unrelated"
        shared.store["listing_counter"] = 7
        service = _service(source, shared=shared)
        await service.search(ListingFilters(city="Porto"))
        await service.get_by_id("demo-1")
        await service.clear_cache()
        assert shared.store == {"listingsXYZ": "unrelated", "listing_counter": 7}
