from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from errors import ValidationError


_HHMM = re.compile(r"[0-9]{4}")


def time_to_minutes(hhmm: Optional[str]) -> int:
    """Parse "HHMM" into minutes since midnight. None means start of day."""
    if hhmm is None:
        return 0
    if not isinstance(hhmm, str) or not _HHMM.fullmatch(hhmm):
        raise ValidationError(f"time must be 4 digits HHMM, got {hhmm!r}")
    hour = int(hhmm[:2])
    minute = int(hhmm[2:])
    if hour > 23:
        raise ValidationError(f"hour out of range in {hhmm!r}")
    if minute > 59:
        raise ValidationError(f"minute out of range in {hhmm!r}")
    return hour * 60 + minute


def _period_minutes(point: Optional[Dict[str, Any]]) -> int:
    # Provider data: absent or unparseable times count as 0.
    if not point:
        return 0
    try:
        return time_to_minutes(point.get("time"))
    except ValidationError:
        return 0


def is_open_at(periods: List[Dict[str, Any]], day: int, minutes: int) -> bool:
    for period in periods or []:
        open_point = period.get("open") or {}
        if open_point.get("day") != day:
            continue
        open_min = _period_minutes(open_point)
        close_min = _period_minutes(period.get("close"))
        if open_min == 0 or close_min == 0:
            continue
        if open_min <= minutes <= close_min:
            return True
        if open_min > close_min and (minutes >= open_min or minutes <= close_min):
            return True
    return False


def _periods(record: Dict[str, Any]) -> List[Dict[str, Any]]:
    return (record.get("opening_hours") or {}).get("periods") or []


def current_day(now: Optional[datetime] = None) -> int:
    """Today as 0 = Sunday .. 6 = Saturday."""
    now = now or datetime.now()
    return (now.weekday() + 1) % 7


def filter_by_time(
    records: List[Dict[str, Any]],
    day: Optional[int] = None,
    time: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    if day is None and time is None:
        return records

    if time is None:
        return [
            r for r in records
            if any((p.get("open") or {}).get("day") == day for p in _periods(r))
        ]

    minutes = time_to_minutes(time)
    target_day = day if day is not None else current_day(now)
    return [r for r in records if is_open_at(_periods(r), target_day, minutes)]
