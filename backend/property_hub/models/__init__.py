"""Pydantic models shared across the service."""

from .core import (
    AppError,
    AssistantMessage,
    AssistantRole,
    Coordinates,
    ErrorCode,
    Listing,
    ListingFilters,
    ListingStatus,
    MessageKind,
    PerformanceReport,
    PropertyType,
    SharedContext,
)

__all__ = [
    "AppError",
    "AssistantMessage",
    "AssistantRole",
    "Coordinates",
    "ErrorCode",
    "Listing",
    "ListingFilters",
    "ListingStatus",
    "MessageKind",
    "PerformanceReport",
    "PropertyType",
    "SharedContext",
]
