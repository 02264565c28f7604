from __future__ import annotations

import uuid
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from shadow_calendar.domain.value_objects.schedule import CalendarEvent
from shadow_calendar.services.calendar.availability import find_available_slots, week_start, weekly_shift_hours
from tests.conftest import utc

USER = uuid.uuid4()


def _event(type_, start, end) -> CalendarEvent:
    return CalendarEvent(id=uuid.uuid4(), user_id=USER, type=type_, start_time=start, end_time=end)


def _busy_day() -> list[CalendarEvent]:
    return [
        _event("block", utc(2025, 3, 3, 13), utc(2025, 3, 3, 14)),
        _event("interview", utc(2025, 3, 3, 9), utc(2025, 3, 3, 10)),
        _event("block", utc(2025, 3, 3, 9, 30), utc(2025, 3, 3, 11)),
    ]


def test_gaps_between_merged_events():
    slots = find_available_slots(_busy_day(), utc(2025, 3, 3, 8), utc(2025, 3, 3, 17), 60)

    assert slots == [utc(2025, 3, 3, 8), utc(2025, 3, 3, 11), utc(2025, 3, 3, 14)]


def test_short_gaps_are_skipped():
    slots = find_available_slots(_busy_day(), utc(2025, 3, 3, 8), utc(2025, 3, 3, 17), 90)

    assert slots == [utc(2025, 3, 3, 11), utc(2025, 3, 3, 14)]


def test_events_outside_range_do_not_block():
    events = [_event("block", utc(2025, 3, 2, 9), utc(2025, 3, 2, 17))]

    assert find_available_slots(events, utc(2025, 3, 3, 8), utc(2025, 3, 3, 9), 60) == [utc(2025, 3, 3, 8)]


def test_slot_length_must_be_positive():
    with pytest.raises(ValueError):
        find_available_slots([], utc(2025, 3, 3, 8), utc(2025, 3, 3, 9), 0)


def test_weekly_hours_count_only_shifts_in_the_week():
    sunday = utc(2025, 3, 2)
    events = [
        _event("shift", utc(2025, 3, 3, 9), utc(2025, 3, 3, 17)),
        _event("shift", utc(2025, 3, 4, 9), utc(2025, 3, 4, 17)),
        _event("shift", utc(2025, 3, 5, 10), utc(2025, 3, 5, 14, 30)),
        _event("interview", utc(2025, 3, 6, 10), utc(2025, 3, 6, 11)),
        _event("shift", utc(2025, 3, 9, 9), utc(2025, 3, 9, 17)),
    ]

    assert weekly_shift_hours(events, sunday) == 20.5


def test_week_starts_on_local_sunday():
    assert week_start(utc(2025, 1, 8, 15), ZoneInfo("UTC")) == utc(2025, 1, 5)

    tz = ZoneInfo("America/New_York")
    # Saturday evening in New York, already Sunday in UTC
    assert week_start(utc(2025, 1, 5, 3), tz) == datetime(2024, 12, 29, tzinfo=tz)
