from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from loguru import logger

from config import Configuration
from errors import CafeSearchError, IntegrityError, ValidationError
from models import SORT_OPTIONS, Cafe, LatLng, SearchRequest, SearchResult
from services.bbox_builder import bounding_box, within_box
from services.cafe_mapper import map_places
from services.opening_hours import filter_by_time, time_to_minutes
from services.ranking import rank_cafes


class PlacesProvider(Protocol):
    def text_search(
        self,
        query: str,
        *,
        location: Optional[LatLng] = None,
        radius: float,
        open_now: Optional[bool] = None,
    ) -> List[Dict[str, Any]]: ...

    def place_details(self, place_id: str) -> Dict[str, Any]: ...


class CafeStore(Protocol):
    def find_cafes(
        self,
        ids: List[str],
        *,
        tags: Optional[List[str]] = None,
        min_rating: Optional[float] = None,
    ) -> List[Cafe]: ...

    def insert_cafes(self, cafes: List[Cafe]) -> List[str]: ...


def validate_request(req: SearchRequest) -> None:
    if not (req.query or req.radius or req.geolocation or req.open_now or req.tags):
        raise ValidationError("at least one of query, radius, geolocation, openNow or tags is required")

    geo = req.geolocation
    if geo is not None and (geo.lat is None or geo.lng is None):
        raise ValidationError("geolocation requires both lat and lng")

    if req.sort_by is not None and req.sort_by not in SORT_OPTIONS:
        raise ValidationError(f"sortBy must be one of {', '.join(SORT_OPTIONS)}")

    if req.custom_time is not None:
        day = req.custom_time.day
        if day is not None and not 0 <= day <= 6:
            raise ValidationError("customTime.day must be between 0 and 6")
        if req.custom_time.time is not None:
            time_to_minutes(req.custom_time.time)

    if req.rating is not None and not 0 <= req.rating <= 5:
        raise ValidationError("rating must be between 0 and 5")


def _require_place_ids(results: List[Dict[str, Any]]) -> List[str]:
    ids: list[str] = []
    for item in results:
        place_id = item.get("place_id")
        if not place_id:
            raise IntegrityError("place_id is required")
        ids.append(str(place_id))
    # the provider can repeat a place; keep the first occurrence
    return list(dict.fromkeys(ids))


async def _fetch_details(places: PlacesProvider, ids: List[str], concurrency: int) -> List[Dict[str, Any]]:
    sem = asyncio.Semaphore(max(1, concurrency))

    async def fetch(place_id: str) -> Dict[str, Any]:
        async with sem:
            detail = await asyncio.to_thread(places.place_details, place_id)
        return {**detail, "place_id": place_id}

    # gather keeps discovery order whatever the completion order; every fetch
    # is awaited before the first failure is raised
    outcomes = await asyncio.gather(*(fetch(pid) for pid in ids), return_exceptions=True)
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome
    return list(outcomes)


def _in_radius(records: List[Dict[str, Any]], center: LatLng, radius_m: float) -> List[Dict[str, Any]]:
    box = bounding_box(center, radius_m)
    kept: list[Dict[str, Any]] = []
    for r in records:
        loc = (r.get("geometry") or {}).get("location") or {}
        if loc.get("lat") is None or loc.get("lng") is None:
            continue
        try:
            point = LatLng(lat=float(loc["lat"]), lng=float(loc["lng"]))
        except (TypeError, ValueError):
            logger.warning("dropping place {}: unreadable location", r.get("place_id"))
            continue
        if within_box(point, box):
            kept.append(r)
    return kept


async def _written_or_stored(
    store: CafeStore,
    to_persist: List[Cafe],
    persisted_ids: List[str],
    min_rating: Optional[float],
) -> List[Cafe]:
    """The new part of the response, in discovery order.

    Cafes this request wrote come back as mapped. An id the insert skipped is
    already stored, either below the minimum rating or written by a concurrent
    request; it is returned with its stored data only if it passes the
    minimum.
    """
    written = set(persisted_ids)
    skipped = [c.id for c in to_persist if c.id not in written]
    stored: Dict[str, Cafe] = {}
    if skipped:
        rows = await asyncio.to_thread(store.find_cafes, skipped, min_rating=min_rating)
        stored = {c.id: c for c in rows}
    added: list[Cafe] = []
    for cafe in to_persist:
        if cafe.id in written:
            added.append(cafe)
        elif cafe.id in stored:
            added.append(stored[cafe.id])
    return added


async def search_cafes(
    req: SearchRequest,
    places: PlacesProvider,
    store: CafeStore,
    cfg: Configuration,
    *,
    now: Optional[datetime] = None,
) -> SearchResult:
    """Search the provider, reconcile with the store and return ranked cafes.

    Validation and integrity failures are reported before any side effect.
    Provider and store failures come back as an error result with no cafes,
    though writes made before the failure are not rolled back.
    """
    try:
        validate_request(req)

        query = req.query or cfg.default_query
        radius = req.radius or cfg.default_radius_m
        results = await asyncio.to_thread(
            places.text_search,
            query,
            location=req.geolocation,
            radius=radius,
            open_now=req.open_now,
        )
        ids = _require_place_ids(results)

        records = await _fetch_details(places, ids, cfg.detail_concurrency)

        if cfg.restrict_to_radius and req.geolocation is not None:
            records = _in_radius(records, req.geolocation, radius)

        if req.custom_time is not None:
            records = filter_by_time(records, req.custom_time.day, req.custom_time.time, now=now)

        if not records:
            logger.info("search query={} matched no cafes", query)
            return SearchResult()

        mapped = map_places(records)
        if not mapped:
            return SearchResult()
        order = {cafe.id: idx for idx, cafe in enumerate(mapped)}

        known = await asyncio.to_thread(
            store.find_cafes,
            list(order),
            tags=req.tags or None,
            min_rating=req.rating,
        )
        known = sorted(known, key=lambda c: order.get(c.id, len(order)))
        known_ids = [c.id for c in known]

        if req.tags:
            # tags only exist in the store, so new provider cafes cannot match
            cafes = rank_cafes(known, req.sort_by, geolocation=req.geolocation, query=req.query)
            logger.info("search query={} tags={} returned {} stored cafes", query, req.tags, len(cafes))
            return SearchResult(cafes=cafes, known_ids=known_ids)

        known_set = set(known_ids)
        to_persist = [c for c in mapped if c.id not in known_set]
        persisted_ids: list[str] = []
        added: list[Cafe] = []
        if to_persist:
            persisted_ids = await asyncio.to_thread(store.insert_cafes, to_persist)
            added = await _written_or_stored(store, to_persist, persisted_ids, req.rating)

        cafes = rank_cafes(known + added, req.sort_by, geolocation=req.geolocation, query=req.query)
        logger.info(
            "search query={} candidates={} known={} new={} returned={}",
            query,
            len(ids),
            len(known),
            len(persisted_ids),
            len(cafes),
        )
        return SearchResult(cafes=cafes, known_ids=known_ids, persisted_ids=persisted_ids)
    except CafeSearchError as exc:
        if exc.kind == "collaborator":
            logger.error("search failed: {}", exc)
        else:
            logger.info("search rejected ({}): {}", exc.kind, exc)
        return SearchResult(error=str(exc), error_kind=exc.kind)
