"""Property Hub Services.

Service layer components:
- Cache: Redis second-level cache for listing queries
- Listings: property sources behind an expiring cache and concurrency limiter
- Assistant: local assistant hub sharing listing context across roles
"""

from .cache import CacheService, RedisCacheService
from .listings import (
    DemoPropertySource,
    HttpPropertySource,
    ListingService,
    ListingSourceError,
    PropertySource,
)
from .assistant import AssistantHub

__all__ = [
    # Cache
    "CacheService",
    "RedisCacheService",
    # Listings
    "DemoPropertySource",
    "HttpPropertySource",
    "ListingService",
    "ListingSourceError",
    "PropertySource",
    # Assistant
    "AssistantHub",
]
