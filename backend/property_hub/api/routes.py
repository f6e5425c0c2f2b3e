"""API routes for Property Hub.

Listing search is served through the ListingService (expiring cache in
front of a throttled property source). Services are built once in
``create_app`` and reach the handlers through FastAPI dependencies.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from property_hub.models import (
    Coordinates,
    Listing,
    ListingFilters,
    PerformanceReport,
    PropertyType,
)
from property_hub.services import AssistantHub, ListingService
from property_hub.utils.cache import ExpiringCache
from property_hub.utils.geo import haversine_distance

logger = logging.getLogger(__name__)

router = APIRouter()


def get_listing_service(request: Request) -> ListingService:
    return request.app.state.listing_service


def get_assistant_hub(request: Request) -> AssistantHub:
    return request.app.state.assistant_hub


def get_memory_cache(request: Request) -> ExpiringCache:
    return request.app.state.cache


class ListingsResponse(BaseModel):
    success: bool = True
    count: int
    listings: list[Listing]


class NearbyListing(BaseModel):
    listing: Listing
    distance_km: float


class NearbyResponse(BaseModel):
    success: bool = True
    count: int
    radius_km: float
    center: Coordinates
    listings: list[NearbyListing]


class SyncResponse(BaseModel):
    success: bool = True
    count: int


class CacheStatsResponse(BaseModel):
    success: bool = True
    entries: int
    removed: int = 0


class AssistantQueryRequest(BaseModel):
    """Request model for an assistant question."""
    question: str = Field(..., min_length=1, max_length=1000)
    consultant_id: str = Field(..., min_length=1)
    include_coaching: bool = False
    filters: Optional[ListingFilters] = Field(
        None, description="Refresh recent listings with this search before answering"
    )


class AssistantQueryResponse(BaseModel):
    success: bool = True
    answer: str
    relevant_listings: Optional[list[Listing]] = None
    coaching: Optional[PerformanceReport] = None


@router.get("/properties", response_model=ListingsResponse)
async def search_properties(
    city: Optional[str] = None,
    property_type: Optional[PropertyType] = Query(None, alias="type"),
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    limit: Optional[int] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius_km: Optional[float] = None,
    service: ListingService = Depends(get_listing_service),
) -> ListingsResponse:
    """Search listings. Results are cached for a few minutes per filter set."""
    if min_price is not None and max_price is not None and min_price > max_price:
        raise HTTPException(status_code=400, detail="min_price cannot be greater than max_price")
    filters = ListingFilters(
        city=city,
        property_type=property_type,
        min_price=min_price,
        max_price=max_price,
        limit=limit,
        latitude=lat,
        longitude=lng,
        radius_km=radius_km,
    )
    listings = await service.search(filters)
    return ListingsResponse(count=len(listings), listings=listings)


@router.get("/properties/nearby", response_model=NearbyResponse)
async def nearby_properties(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(5, gt=0, le=100),
    limit: int = Query(20, ge=1, le=200),
    service: ListingService = Depends(get_listing_service),
) -> NearbyResponse:
    """Find listings within ``radius_km`` of a point, closest first."""
    listings = await service.search_nearby(lat, lng, radius_km=radius_km, limit=limit)
    ranked = sorted(
        (
            NearbyListing(
                listing=l,
                distance_km=round(haversine_distance(lat, lng, l.latitude, l.longitude), 2),  # type: ignore[arg-type]
            )
            for l in listings
        ),
        key=lambda n: n.distance_km,
    )
    return NearbyResponse(
        count=len(ranked),
        radius_km=radius_km,
        center=Coordinates(lat=lat, lng=lng),
        listings=ranked,
    )


@router.get("/properties/{listing_id}", response_model=Listing)
async def get_property(
    listing_id: str,
    service: ListingService = Depends(get_listing_service),
) -> Listing:
    listing = await service.get_by_id(listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Listing {listing_id} not found")
    return listing


@router.post("/properties/sync", response_model=SyncResponse)
async def sync_properties(
    service: ListingService = Depends(get_listing_service),
) -> SyncResponse:
    """Refetch from the source and invalidate every cached query."""
    listings = await service.sync()
    return SyncResponse(count=len(listings))


@router.get("/properties/source/status")
async def source_status(
    service: ListingService = Depends(get_listing_service),
) -> dict[str, Any]:
    return {"connected": await service.test_connection()}


@router.delete("/cache", response_model=CacheStatsResponse)
async def clear_cache(
    service: ListingService = Depends(get_listing_service),
    cache: ExpiringCache = Depends(get_memory_cache),
) -> CacheStatsResponse:
    removed = len(cache)
    await service.clear_cache()
    logger.info(f"[CACHE] Cleared {removed} entries on request")
    return CacheStatsResponse(entries=len(cache), removed=removed)


@router.post("/cache/sweep", response_model=CacheStatsResponse)
async def sweep_cache(
    service: ListingService = Depends(get_listing_service),
    cache: ExpiringCache = Depends(get_memory_cache),
) -> CacheStatsResponse:
    removed = service.sweep_expired()
    return CacheStatsResponse(entries=len(cache), removed=removed)


@router.post("/assistant/query", response_model=AssistantQueryResponse)
async def assistant_query(
    request: AssistantQueryRequest,
    hub: AssistantHub = Depends(get_assistant_hub),
) -> AssistantQueryResponse:
    """Ask the assistant hub a question, optionally refreshing listings first."""
    if request.filters is not None:
        await hub.search_listings(request.filters)
    result = await hub.integrated_query(
        request.question,
        request.consultant_id,
        include_coaching=request.include_coaching,
    )
    return AssistantQueryResponse(**result)


@router.get("/assistant/coaching/{consultant_id}", response_model=PerformanceReport)
async def assistant_coaching(
    consultant_id: str,
    hub: AssistantHub = Depends(get_assistant_hub),
) -> PerformanceReport:
    return await hub.analyze_performance(consultant_id)
