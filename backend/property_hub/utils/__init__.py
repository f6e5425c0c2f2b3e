"""Shared helpers: expiring cache, concurrency limiter, geo math."""

from .cache import ExpiringCache, sweep_periodically
from .geo import filter_within_radius, haversine_distance
from .limiter import ConcurrencyLimiter

__all__ = [
    "ExpiringCache",
    "sweep_periodically",
    "ConcurrencyLimiter",
    "filter_within_radius",
    "haversine_distance",
]
