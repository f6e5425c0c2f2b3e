"""Great-circle distance helpers."""

import math
from typing import Iterable, Protocol, TypeVar

EARTH_RADIUS_KM = 6371.0


class Locatable(Protocol):
    latitude: float | None
    longitude: float | None


L = TypeVar("L", bound=Locatable)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in km between two lat/lng points on a spherical Earth."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def filter_within_radius(
    records: Iterable[L], latitude: float, longitude: float, radius_km: float
) -> list[L]:
    """Keep records whose coordinates fall within ``radius_km`` of the point.

    Records without coordinates are dropped.
    """
    result = []
    for record in records:
        if record.latitude is None or record.longitude is None:
            continue
        distance = haversine_distance(latitude, longitude, record.latitude, record.longitude)
        if distance <= radius_km:
            result.append(record)
    return result
