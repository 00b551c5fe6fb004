"""Utility helpers for the cafe search backend."""

from __future__ import annotations

import math
from typing import Optional

from models import LatLng


EARTH_RADIUS_KM = 6371.0


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    if not value:
        return "unset"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}...{value[-visible:]}"


def distance_km(a: LatLng, b: LatLng) -> float:
    """Great-circle distance in kilometers (haversine, half-angle cosine form)."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlambda = math.radians(b.lng - a.lng)
    h = 0.5 - math.cos(dphi) / 2 + math.cos(phi1) * math.cos(phi2) * (1 - math.cos(dlambda)) / 2
    # rounding can push h a hair outside [0, 1]
    h = min(max(h, 0.0), 1.0)
    return EARTH_RADIUS_KM * 2 * math.asin(math.sqrt(h))
