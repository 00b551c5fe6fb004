"""Data models for the cafe search backend."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


NO_ADDRESS = "No address found"
# Providers occasionally omit geometry; such cafes land at (0, 0).
MISSING_COORDINATE = 0.0

SORT_OPTIONS = ("distance", "relevance")


@dataclass
class LatLng:
    lat: float
    lng: float


@dataclass
class CustomTime:
    day: Optional[int] = None  # 0 = Sunday, provider convention
    time: Optional[str] = None  # "HHMM"


@dataclass
class Cafe:
    id: str
    name: str
    address: str = NO_ADDRESS
    latitude: float = MISSING_COORDINATE
    longitude: float = MISSING_COORDINATE
    hours: str = ""
    tags: list[str] = field(default_factory=list)
    rating: float = 0.0
    num_reviews: int = 0
    image: str = ""
    summary: str = ""

    @property
    def location(self) -> LatLng:
        return LatLng(lat=self.latitude, lng=self.longitude)

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Cafe":
        return cls(
            id=str(row["id"]),
            name=str(row.get("name") or ""),
            address=row.get("address") or NO_ADDRESS,
            latitude=float(row.get("latitude") or MISSING_COORDINATE),
            longitude=float(row.get("longitude") or MISSING_COORDINATE),
            hours=row.get("hours") or "",
            tags=[str(t) for t in (row.get("tags") or [])],
            rating=float(row.get("rating") or 0.0),
            num_reviews=int(row.get("num_reviews") or 0),
            image=row.get("image") or "",
            summary=row.get("summary") or "",
        )


@dataclass
class SearchRequest:
    query: Optional[str] = None
    radius: Optional[float] = None  # meters
    geolocation: Optional[LatLng] = None
    open_now: Optional[bool] = None
    tags: list[str] = field(default_factory=list)
    sort_by: Optional[str] = None
    custom_time: Optional[CustomTime] = None
    rating: Optional[float] = None


@dataclass
class SearchResult:
    cafes: List[Cafe] = field(default_factory=list)
    error: str = ""
    error_kind: Optional[str] = None
    known_ids: list[str] = field(default_factory=list)
    persisted_ids: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.error
