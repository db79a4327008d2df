"""
Great-circle distances between coordinates and nearest-store search.
"""
import math
from typing import List, NamedTuple, Tuple

from pickup.exceptions import StoreNotFound
from .models import Store
from .utils import get_store, list_available_stores

EARTH_RADIUS_KM = 6371


class Point(NamedTuple):
    lat: float
    lng: float


def store_location(store: Store) -> Point:
    return Point(store.latitude, store.longitude)


def distance_km(a: Point, b: Point) -> float:
    """Haversine distance in kilometers."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.lng - a.lng)

    h = (
        math.sin(d_lat / 2) ** 2 +
        math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def nearby_stores(point: Point, radius_km: float) -> List[Tuple[Store, float]]:
    """
    Available stores within ``radius_km`` of ``point``, nearest first.

    Returns ``(store, distance_km)`` pairs. A non-positive radius yields no
    stores.
    """
    if radius_km <= 0:
        return []

    results = []
    for store in list_available_stores():
        km = distance_km(point, store_location(store))
        if km <= radius_km:
            results.append((store, km))

    results.sort(key=lambda pair: pair[1])
    return results


def store_distance_km(store_id, point: Point) -> float:
    """Distance to a single store; unknown stores are infinitely far away."""
    try:
        store = get_store(store_id)
    except StoreNotFound:
        return math.inf
    return distance_km(point, store_location(store))
