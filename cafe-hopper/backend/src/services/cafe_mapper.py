from __future__ import annotations

import re
from typing import Any, Dict, List

from loguru import logger

from errors import MappingError
from models import MISSING_COORDINATE, NO_ADDRESS, Cafe


# Every whitespace character except the newline that separates days.
_INLINE_WHITESPACE = re.compile(r"[^\S\n]+")


def normalize_hours(weekday_text: List[str]) -> str:
    return "\n".join(_INLINE_WHITESPACE.sub("", line) for line in weekday_text)


def _coordinate(location: Dict[str, Any], key: str) -> float:
    value = location.get(key)
    if value is None:
        return MISSING_COORDINATE
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise MappingError(f"invalid {key} coordinate {value!r}") from exc


def map_to_cafe(raw: Dict[str, Any]) -> Cafe:
    """Build a fresh Cafe from a provider detail record.

    Derived fields (tags, rating, reviews, image, summary) start empty; only
    the review path fills them in later.
    """
    name = raw.get("name")
    if not name:
        raise MappingError("name required")

    location = (raw.get("geometry") or {}).get("location") or {}
    weekday_text = (raw.get("opening_hours") or {}).get("weekday_text") or []

    return Cafe(
        id=str(raw["place_id"]),
        name=str(name),
        address=raw.get("formatted_address") or NO_ADDRESS,
        latitude=_coordinate(location, "lat"),
        longitude=_coordinate(location, "lng"),
        hours=normalize_hours(weekday_text),
    )


def map_places(records: List[Dict[str, Any]]) -> List[Cafe]:
    cafes: list[Cafe] = []
    for raw in records:
        try:
            cafes.append(map_to_cafe(raw))
        except MappingError as exc:
            logger.warning("dropping place {}: {}", raw.get("place_id"), exc)
    return cafes
