"""Shared fixtures for unit tests."""

import pytest

from property_hub.services.listings import DemoPropertySource


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingSource(DemoPropertySource):
    """Demo source that records how often it was hit."""

    def __init__(self) -> None:
        super().__init__()
        self.list_calls = 0
        self.item_calls = 0

    async def fetch_listings(self):
        self.list_calls += 1
        return await super().fetch_listings()

    async def fetch_listing(self, listing_id):
        self.item_calls += 1
        return await super().fetch_listing(listing_id)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def source() -> CountingSource:
    return CountingSource()
