from __future__ import annotations

from datetime import date, datetime, time

import pytest

from volunteer_roster.common.datetime_utils import NormalizedInterval, normalize_interval, parse_wall_time
from volunteer_roster.core.enums import EventStatus
from volunteer_roster.core.exceptions import ValidationError
from volunteer_roster.events.conflicts import check_conflict, conflicts, find_conflict
from volunteer_roster.events.model import Event

DAY = date(2024, 6, 10)


def _iv(start: str, end: str) -> NormalizedInterval:
    return normalize_interval(DAY, start, end)


def _event(event_id, start, end, day=DAY, name=None):
    return Event(
        event_id=event_id,
        name=name or f"Evento {event_id}",
        date=day,
        start_time=parse_wall_time(start),
        end_time=parse_wall_time(end),
        status=EventStatus.CONFIRMED,
    )


PAIRS = [
    ("09:00", "10:00", "09:30", "11:00"),
    ("09:00", "10:00", "10:00", "11:00"),
    ("09:00", "12:00", "10:00", "11:00"),
    ("09:00", "10:00", "13:00", "14:00"),
    ("22:00", "01:00", "00:30", "02:00"),
    ("08:00", "08:30", "08:29", "08:31"),
]


@pytest.mark.parametrize("a_start,a_end,b_start,b_end", PAIRS)
def test_conflicts_is_symmetric(a_start, a_end, b_start, b_end):
    a, b = _iv(a_start, a_end), _iv(b_start, b_end)
    assert conflicts(a, b) == conflicts(b, a)


@pytest.mark.parametrize("start,end", [("09:00", "10:00"), ("23:00", "01:00"), ("00:00", "00:01")])
def test_interval_conflicts_with_itself(start, end):
    iv = _iv(start, end)
    assert conflicts(iv, iv)


def test_back_to_back_events_do_not_conflict():
    assert not conflicts(_iv("09:00", "10:00"), _iv("10:00", "11:00"))
    assert not conflicts(_iv("10:00", "11:00"), _iv("09:00", "10:00"))


def test_partial_overlap_conflicts():
    assert conflicts(_iv("09:00", "10:00"), _iv("09:59", "10:30"))


def test_end_before_start_rolls_over_to_next_day():
    iv = _iv("22:00", "02:00")
    assert iv.start == datetime(2024, 6, 10, 22, 0)
    assert iv.end == datetime(2024, 6, 11, 2, 0)

    # An event early on the next day overlaps the tail of the late one
    next_morning = normalize_interval(date(2024, 6, 11), "01:00", "03:00")
    assert conflicts(iv, next_morning)


def test_find_conflict_excludes_the_edited_event():
    existing = [_event(1, "09:00", "10:00")]
    moved = _event(1, "09:30", "10:30")

    assert find_conflict(moved, existing, exclude_event_id=1) is None
    assert check_conflict(moved, existing) is None
    assert find_conflict(moved, existing) is existing[0]


def test_find_conflict_returns_earliest_start_then_lowest_id():
    existing = [
        _event(7, "10:00", "12:00"),
        _event(5, "09:00", "11:00"),
        _event(3, "09:00", "09:45"),
    ]
    candidate = _event(None, "09:30", "10:30")

    found = find_conflict(candidate, existing)
    assert found.event_id == 3


def test_find_conflict_skips_malformed_rows(caplog):
    broken = Event(
        event_id=9,
        name="Quebrado",
        date=DAY,
        start_time="25:99",
        end_time="10:00",
    )
    candidate = _event(None, "09:00", "10:00")

    with caplog.at_level("WARNING"):
        assert find_conflict(candidate, [broken]) is None
    assert "data quality" in caplog.text


def test_find_conflict_rejects_malformed_candidate():
    with pytest.raises(ValidationError):
        find_conflict(Event(event_id=None, name="x", date=DAY, start_time="x", end_time=time(10, 0)), [])


def test_conversion_between_zones_keeps_overlap():
    # Same wall-clock pair in the storage zone, viewed from another zone
    a = normalize_interval(DAY, "09:00", "10:00", storage_tz="America/Sao_Paulo", local_tz="Europe/Lisbon")
    b = normalize_interval(DAY, "09:30", "10:30", storage_tz="America/Sao_Paulo", local_tz="Europe/Lisbon")
    assert a.start.hour == 13
    assert conflicts(a, b)
