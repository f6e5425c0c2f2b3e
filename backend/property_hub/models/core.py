"""Core data models for Property Hub.

Pydantic models for listings, search filters and the assistant hub, plus
the error envelope returned by the API.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


class PropertyType(str, Enum):
    """Listing categories."""

    APARTMENT = "apartment"
    HOUSE = "house"
    LAND = "land"
    COMMERCIAL = "commercial"
    OTHER = "other"


class ListingStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    RENTED = "rented"
    INACTIVE = "inactive"


class Coordinates(BaseModel):
    """Geographic coordinates with validation.

    Latitude must be between -90 and 90 degrees.
    Longitude must be between -180 and 180 degrees.
    """

    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class Listing(BaseModel):
    """A property listing as returned by a property source."""

    id: str = Field(..., min_length=1, description="Listing identifier")
    title: str = Field(..., min_length=1, description="Display title")
    description: Optional[str] = None
    property_type: PropertyType = Field(PropertyType.OTHER, description="Listing category")
    status: ListingStatus = ListingStatus.ACTIVE
    price: Optional[float] = Field(None, ge=0, description="Asking price in EUR")
    area_m2: Optional[float] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    photos: list[str] = Field(default_factory=list)
    features: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    source: str = Field("demo", description="Which property source produced it")
    external_id: Optional[str] = Field(None, description="Identifier at the source")

    @property
    def coordinates(self) -> Coordinates | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(lat=self.latitude, lng=self.longitude)


class ListingFilters(BaseModel):
    """Search filters for listing queries.

    The radius filter only applies when latitude, longitude and radius_km
    are all set.
    """

    city: Optional[str] = None
    property_type: Optional[PropertyType] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    limit: Optional[int] = Field(None, ge=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    radius_km: Optional[float] = Field(None, ge=0)

    @model_validator(mode="after")
    def _check_price_band(self) -> "ListingFilters":
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price cannot be greater than max_price")
        return self

    @property
    def has_geo(self) -> bool:
        return (
            self.latitude is not None
            and self.longitude is not None
            and self.radius_km is not None
        )

    def cache_key(self) -> str:
        """Build a normalized cache key.

        Unset fields are dropped and keys are sorted, so two filter objects
        with the same values always map to the same entry.

        Example:
            >>> ListingFilters(city="Lisboa", limit=5).cache_key()
            'listings:{"city":"Lisboa","limit":5}'
        """
        payload = self.model_dump(mode="json", exclude_none=True)
        return "listings:" + json.dumps(payload, sort_keys=True, separators=(",", ":"))


class AssistantRole(str, Enum):
    """Assistants that exchange messages through the hub."""

    COACHING = "coaching"
    ASSISTANT = "assistant"
    DATA = "data"


class MessageKind(str, Enum):
    QUERY = "query"
    RESPONSE = "response"
    NOTIFICATION = "notification"


class AssistantMessage(BaseModel):
    """A message between two assistants."""

    sender: AssistantRole
    recipient: AssistantRole
    kind: MessageKind
    content: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    context: Optional[dict[str, Any]] = None


class SharedContext(BaseModel):
    """State shared by every assistant in the hub."""

    consultant_id: Optional[str] = None
    recent_listings: list[Listing] = Field(default_factory=list)
    search_preferences: dict[str, Any] = Field(default_factory=dict)


class PerformanceReport(BaseModel):
    """Coaching feedback for a consultant."""

    analysis: str
    recommendations: list[str]
    metrics: dict[str, int]


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    SOURCE_ERROR = "SOURCE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    API_ERROR = "API_ERROR"


class AppError(BaseModel):
    """Error payload returned to API clients."""

    code: ErrorCode
    message: str
    user_message: str
