"""Property sources: where listing records come from.

- DemoPropertySource: five built-in listings (Lisboa, Porto, Braga, Coimbra)
  for local development and tests. No network.
- HttpPropertySource: listing provider REST API (Casafari-style), one
  shared httpx client with connection pooling.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from property_hub.models import Listing, ListingStatus, PropertyType

logger = logging.getLogger(__name__)


class ListingSourceError(Exception):
    """Raised when a property source cannot be reached or answers badly."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PropertySource(ABC):
    """Abstract base class for listing providers."""

    name: str = "source"

    @abstractmethod
    async def fetch_listings(self) -> list[Listing]:
        """Return every listing the source currently exposes."""

    @abstractmethod
    async def fetch_listing(self, listing_id: str) -> Listing | None:
        """Return a single listing, or None if the source doesn't know it."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


def _demo_listings() -> list[Listing]:
    now = datetime.now(timezone.utc)
    rows = [
        ("demo-1", "Modern T3 apartment in the centre", "Renovated apartment with luxury finishes",
         PropertyType.APARTMENT, 250000, 120, 3, 2, "Rua das Flores, 123", "Lisboa", 38.7223, -9.1393),
        ("demo-2", "V4 house with garden", "Spacious house with a private garden",
         PropertyType.HOUSE, 450000, 200, 4, 3, "Avenida da Liberdade, 456", "Porto", 41.1579, -8.6291),
        ("demo-3", "Renovated T2 apartment", "Fully renovated apartment",
         PropertyType.APARTMENT, 180000, 85, 2, 1, "Praça da República, 789", "Braga", 41.5454, -8.4265),
        ("demo-4", "T3 house with pool", "Modern house with pool and garage",
         PropertyType.HOUSE, 380000, 180, 3, 2, "Rua do Sol, 321", "Coimbra", 40.2033, -8.4103),
        ("demo-5", "T1 apartment in the historic centre", "Charming apartment in the historic centre",
         PropertyType.APARTMENT, 150000, 60, 1, 1, "Rua Augusta, 100", "Lisboa", 38.7139, -9.1394),
    ]
    return [
        Listing(
            id=listing_id,
            title=title,
            description=description,
            property_type=property_type,
            status=ListingStatus.ACTIVE,
            price=price,
            area_m2=area,
            bedrooms=bedrooms,
            bathrooms=bathrooms,
            address=address,
            city=city,
            region=city,
            latitude=lat,
            longitude=lng,
            created_at=now,
            updated_at=now,
            source="demo",
            external_id=listing_id,
        )
        for (listing_id, title, description, property_type, price, area,
             bedrooms, bathrooms, address, city, lat, lng) in rows
    ]


class DemoPropertySource(PropertySource):
    """In-memory source backed by a fixed list of listings."""

    name = "demo"

    def __init__(self, listings: list[Listing] | None = None) -> None:
        self._listings = listings if listings is not None else _demo_listings()

    async def fetch_listings(self) -> list[Listing]:
        return list(self._listings)

    async def fetch_listing(self, listing_id: str) -> Listing | None:
        return next((l for l in self._listings if l.id == listing_id), None)


class HttpPropertySource(PropertySource):
    """Listing provider REST client.

    Expects ``GET /properties`` to return ``{"properties": [...]}`` (or a bare
    list) and ``GET /properties/{id}`` to return a single record, 404 when
    unknown. Records that fail validation are skipped with a log line; a
    non-JSON body or a payload that is not a list raises ListingSourceError.
    """

    name = "http"
    DEFAULT_BASE_URL = "https://api.casafari.com/v1"

    HEADERS = {
        "User-Agent": "PropertyHub/0.1",
        "Accept": "application/json",
    }

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = dict(self.HEADERS)
            if self._api_key:
                headers["Authorization"] = f"Bearer {self._api_key}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
                limits=httpx.Limits(max_connections=8, max_keepalive_connections=4),
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str) -> httpx.Response:
        client = self._get_client()
        try:
            response = await client.get(path)
        except httpx.HTTPError as e:
            raise ListingSourceError(f"Listing source unreachable: {e}") from e
        return response

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ListingSourceError(
                f"Listing source sent a non-JSON body ({response.headers.get('content-type', 'unknown')})",
                status_code=response.status_code,
            ) from e

    def _parse(self, raw: Any) -> Listing | None:
        if not isinstance(raw, dict):
            logger.info(f"[SOURCE] Skipping non-object listing record: {type(raw).__name__}")
            return None
        try:
            record = dict(raw)
            record.setdefault("source", self.name)
            record["id"] = str(record.get("id", ""))
            return Listing.model_validate(record)
        except ValidationError as e:
            logger.info(f"[SOURCE] Skipping malformed listing {raw.get('id')!r}: {e.error_count()} errors")
            return None

    async def fetch_listings(self) -> list[Listing]:
        response = await self._get("/properties")
        if response.is_error:
            raise ListingSourceError(
                f"Listing source returned {response.status_code}",
                status_code=response.status_code,
            )
        data = self._decode(response)
        records = data.get("properties", []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise ListingSourceError("Listing source sent an unexpected payload shape")
        listings = [l for l in (self._parse(r) for r in records) if l is not None]
        logger.info(f"[SOURCE] Fetched {len(listings)}/{len(records)} listings from {self._base_url}")
        return listings

    async def fetch_listing(self, listing_id: str) -> Listing | None:
        response = await self._get(f"/properties/{listing_id}")
        if response.status_code == 404:
            return None
        if response.is_error:
            raise ListingSourceError(
                f"Listing source returned {response.status_code}",
                status_code=response.status_code,
            )
        return self._parse(self._decode(response))

    async def ping(self) -> bool:
        try:
            response = await self._get_client().get("/properties", params={"limit": 1})
            return response.is_success
        except httpx.HTTPError as e:
            logger.info(f"[SOURCE] Ping failed: {e}")
            return False
