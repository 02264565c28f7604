from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from shadow_calendar.domain.value_objects.schedule import (
    CalendarEvent,
    CommuteDetails,
    Coordinates,
    EventLocation,
    TypicalShift,
)
from shadow_calendar.services.calendar.shift_patterns import get_typical_shifts, normalize_employment_type
from tests.conftest import utc


def test_event_end_must_follow_start():
    with pytest.raises(ValueError):
        CalendarEvent(user_id=uuid.uuid4(), type="block", start_time=utc(2025, 3, 3, 10), end_time=utc(2025, 3, 3, 10))


def test_commute_details_only_on_commute_events():
    details = CommuteDetails(served_event_id=None, transit_mode="lynx", transit_time_minutes=20)

    with pytest.raises(ValueError):
        CalendarEvent(user_id=uuid.uuid4(), type="shift", start_time=utc(2025, 3, 3, 9), end_time=utc(2025, 3, 3, 10), commute=details)
    with pytest.raises(ValueError):
        CalendarEvent(user_id=uuid.uuid4(), type="commute", start_time=utc(2025, 3, 3, 9), end_time=utc(2025, 3, 3, 10))


def test_naive_datetimes_are_taken_as_utc():
    event = CalendarEvent(
        user_id=str(uuid.uuid4()),
        type="block",
        start_time=datetime(2025, 3, 3, 9),
        end_time="2025-03-03T10:00:00Z",
    )

    assert event.start_time.tzinfo == timezone.utc
    assert event.duration_minutes == 60
    assert isinstance(event.user_id, uuid.UUID)


def test_location_bound_needs_a_place():
    kwargs = dict(user_id=uuid.uuid4(), start_time=utc(2025, 3, 3, 9), end_time=utc(2025, 3, 3, 10))

    assert CalendarEvent(type="interview", location=EventLocation(address="1 Main St"), **kwargs).is_location_bound
    assert not CalendarEvent(type="interview", location=EventLocation(address="  "), **kwargs).is_location_bound
    assert not CalendarEvent(
        type="block", location=EventLocation(coordinates=Coordinates(28.5, -81.3)), **kwargs
    ).is_location_bound


def test_coordinates_are_range_checked():
    with pytest.raises(ValueError):
        Coordinates(lat=91, lng=0)
    assert Coordinates.from_dict({"lat": "28.5", "lng": -81.3}) == Coordinates(28.5, -81.3)
    assert Coordinates.from_dict({"lat": 28.5}) is None


def test_typical_shift_rejects_empty_slot():
    with pytest.raises(ValueError):
        TypicalShift(day_of_week=1, start_hour=9, end_hour=9)
    with pytest.raises(ValueError):
        TypicalShift(day_of_week=7, start_hour=9, end_hour=17)


def test_typical_shift_weekday_counts_from_sunday():
    sunday_shift = TypicalShift(day_of_week=0, start_hour=11, end_hour=19)

    assert sunday_shift.matches(date(2025, 3, 2))
    assert not sunday_shift.matches(date(2025, 3, 3))


def test_overnight_shift_ends_next_day():
    shift = TypicalShift(day_of_week=5, start_hour=22, end_hour=6)
    tz = ZoneInfo("America/New_York")

    start, end = shift.occurrence_on(date(2025, 1, 10), tz)

    assert shift.overnight
    assert start == datetime(2025, 1, 10, 22, tzinfo=tz)
    assert end == datetime(2025, 1, 11, 6, tzinfo=tz)


def test_default_patterns_by_employment_type():
    full_time = get_typical_shifts("full-time")
    retail = get_typical_shifts("Retail")

    assert sorted(s.day_of_week for s in full_time) == [1, 2, 3, 4, 5]
    assert all((s.start_hour, s.end_hour) == (9, 17) for s in full_time)
    assert sorted(s.day_of_week for s in get_typical_shifts("part_time")) == [1, 3, 5]
    assert sorted(s.day_of_week for s in retail) == [0, 2, 4, 6]
    assert {(s.start_hour, s.end_hour) for s in retail if s.day_of_week == 6} == {(9, 17)}
    assert sorted(s.day_of_week for s in get_typical_shifts("restaurant")) == [2, 3, 4, 5, 6]


def test_unknown_employment_type_falls_back_to_full_time():
    assert get_typical_shifts("astronaut") == get_typical_shifts("full-time")
    assert get_typical_shifts(None) == get_typical_shifts("full-time")
    assert normalize_employment_type("  Part Time ") == "part-time"
