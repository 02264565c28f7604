from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from typing import Iterable

from shadow_calendar.domain.value_objects.schedule import CalendarEvent


def week_start(moment: datetime, tz: tzinfo) -> datetime:
    """Local Sunday 00:00 of the week containing ``moment``."""
    local = moment.astimezone(tz)
    days_since_sunday = (local.weekday() + 1) % 7
    sunday = local.date() - timedelta(days=days_since_sunday)
    return datetime(sunday.year, sunday.month, sunday.day, tzinfo=tz)


def _merged_busy(events: Iterable[CalendarEvent], range_start: datetime, range_end: datetime) -> list[tuple[datetime, datetime]]:
    busy: list[tuple[datetime, datetime]] = []
    for event in sorted(events, key=lambda e: (e.start_time, e.end_time)):
        start = max(event.start_time, range_start)
        end = min(event.end_time, range_end)
        if end <= start:
            continue
        if busy and start <= busy[-1][1]:
            busy[-1] = (busy[-1][0], max(busy[-1][1], end))
        else:
            busy.append((start, end))
    return busy


def find_available_slots(
    events: Iterable[CalendarEvent],
    range_start: datetime,
    range_end: datetime,
    minutes: int,
) -> list[datetime]:
    """Start of every free gap of at least ``minutes`` inside the range."""
    if minutes <= 0:
        raise ValueError("minutes must be positive")
    if range_end <= range_start:
        return []

    needed = timedelta(minutes=minutes)
    slots: list[datetime] = []
    cursor = range_start
    for busy_start, busy_end in _merged_busy(events, range_start, range_end):
        if busy_start - cursor >= needed:
            slots.append(cursor)
        cursor = max(cursor, busy_end)
    if range_end - cursor >= needed:
        slots.append(cursor)
    return slots


def weekly_shift_hours(events: Iterable[CalendarEvent], week_start_at: datetime) -> float:
    week_end = week_start_at + timedelta(days=7)
    total = timedelta()
    for event in events:
        if event.type != "shift":
            continue
        if week_start_at <= event.start_time < week_end:
            total += event.end_time - event.start_time
    return round(total.total_seconds() / 3600, 1)
