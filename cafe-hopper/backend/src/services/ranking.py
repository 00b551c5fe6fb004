from __future__ import annotations

from typing import List, Optional

from models import Cafe, LatLng
from utils import distance_km


def sort_by_distance(cafes: List[Cafe], origin: Optional[LatLng]) -> List[Cafe]:
    if origin is None:
        return list(cafes)
    return sorted(cafes, key=lambda c: distance_km(origin, c.location))


def sort_by_relevance(cafes: List[Cafe], query: Optional[str]) -> List[Cafe]:
    """Names containing the query come first; otherwise input order is kept."""
    needle = (query or "").lower()
    return sorted(cafes, key=lambda c: needle not in c.name.lower())


def rank_cafes(
    cafes: List[Cafe],
    sort_by: Optional[str],
    *,
    geolocation: Optional[LatLng] = None,
    query: Optional[str] = None,
) -> List[Cafe]:
    if sort_by == "distance":
        return sort_by_distance(cafes, geolocation)
    if sort_by == "relevance":
        return sort_by_relevance(cafes, query)
    return list(cafes)
