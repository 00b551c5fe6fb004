from __future__ import annotations

import math
from typing import Tuple

from models import LatLng
from utils import EARTH_RADIUS_KM


def bounding_box(center: LatLng, radius_m: float) -> Tuple[float, float, float, float]:
    """Approximate a circle of radius_m around center with a lat/lng box.

    Small-angle approximation with the same angular delta on both axes, so the
    box is only good for coarse pre-filtering.

    Returns (min_lat, max_lat, min_lng, max_lng)
    """
    delta = math.degrees(radius_m / (EARTH_RADIUS_KM * 1000.0))
    return (
        center.lat - delta,
        center.lat + delta,
        center.lng - delta,
        center.lng + delta,
    )


def within_box(point: LatLng, box: Tuple[float, float, float, float]) -> bool:
    min_lat, max_lat, min_lng, max_lng = box
    return min_lat <= point.lat <= max_lat and min_lng <= point.lng <= max_lng
