from __future__ import annotations

from datetime import datetime

import pytest

from errors import ValidationError
from services.opening_hours import current_day, filter_by_time, is_open_at, time_to_minutes

from fakes import place_detail


OVERNIGHT = [{"open": {"day": 0, "time": "2200"}, "close": {"day": 0, "time": "0200"}}]
DAYTIME = [{"open": {"day": 1, "time": "0700"}, "close": {"day": 1, "time": "1800"}}]


def test_time_to_minutes() -> None:
    assert time_to_minutes("0200") == 120
    assert time_to_minutes("2359") == 23 * 60 + 59
    assert time_to_minutes(None) == 0


@pytest.mark.parametrize("bad", ["2500", "1260", "25:00", "200", "02000", "ab12", "", "0200\n"])
def test_time_to_minutes_rejects_malformed(bad: str) -> None:
    with pytest.raises(ValidationError):
        time_to_minutes(bad)


def test_overnight_period_wraps_midnight() -> None:
    assert is_open_at(OVERNIGHT, 0, 60)
    assert is_open_at(OVERNIGHT, 0, 1380)
    assert not is_open_at(OVERNIGHT, 0, 600)


def test_period_bounds_are_inclusive() -> None:
    assert is_open_at(DAYTIME, 1, 7 * 60)
    assert is_open_at(DAYTIME, 1, 18 * 60)
    assert not is_open_at(DAYTIME, 1, 18 * 60 + 1)
    assert not is_open_at(DAYTIME, 2, 12 * 60)


def test_zero_or_missing_times_never_match() -> None:
    always_open = [{"open": {"day": 0, "time": "0000"}}]
    assert not is_open_at(always_open, 0, 0)
    assert not is_open_at(always_open, 0, 720)
    no_close = [{"open": {"day": 0, "time": "0800"}}]
    assert not is_open_at(no_close, 0, 900)


def test_filter_without_day_or_time_is_identity() -> None:
    records = [place_detail("A"), place_detail("B")]
    assert filter_by_time(records) is records


def test_filter_day_only_keeps_any_period_that_day() -> None:
    monday = place_detail("Mon", periods=DAYTIME)
    sunday = place_detail("Sun", periods=OVERNIGHT)
    assert filter_by_time([monday, sunday], day=1) == [monday]
    assert filter_by_time([monday, sunday], day=0) == [sunday]


def test_filter_time_uses_today_when_day_missing() -> None:
    monday_noon = datetime(2024, 1, 1, 12, 0)  # a Monday
    assert current_day(monday_noon) == 1
    monday = place_detail("Mon", periods=DAYTIME)
    sunday = place_detail("Sun", periods=OVERNIGHT)
    assert filter_by_time([monday, sunday], time="1200", now=monday_noon) == [monday]


def test_filter_rejects_malformed_time() -> None:
    with pytest.raises(ValidationError):
        filter_by_time([place_detail("A")], day=0, time="25:00")
