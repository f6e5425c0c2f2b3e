"""Listing search service module.

Property sources (demo data or a listing provider REST API) fronted by an
expiring cache and a concurrency limiter.
"""

from .service import ListingService, apply_filters
from .sources import (
    DemoPropertySource,
    HttpPropertySource,
    ListingSourceError,
    PropertySource,
)

__all__ = [
    "ListingService",
    "apply_filters",
    "DemoPropertySource",
    "HttpPropertySource",
    "ListingSourceError",
    "PropertySource",
]
