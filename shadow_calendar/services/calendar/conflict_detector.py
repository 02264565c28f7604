"""
Time-overlap detection between a candidate event and a user's existing events.

Intervals are half-open ``[start, end)``: an event ending at 10:00 and one
starting at 10:00 do not conflict. Everything here is pure.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol

from shadow_calendar.domain.value_objects.schedule import CalendarEvent, ConflictRecord, OverlapType


class _Interval(Protocol):
    start_time: datetime
    end_time: datetime


def events_overlap(first: _Interval, second: _Interval) -> bool:
    return first.start_time < second.end_time and second.start_time < first.end_time


def overlap_window(first: _Interval, second: _Interval) -> tuple[datetime, datetime] | None:
    if not events_overlap(first, second):
        return None
    return max(first.start_time, second.start_time), min(first.end_time, second.end_time)


def classify_overlap(first: _Interval, second: _Interval) -> OverlapType:
    """``full`` when either interval contains the other, otherwise ``partial``."""
    first_inside = second.start_time <= first.start_time and first.end_time <= second.end_time
    second_inside = first.start_time <= second.start_time and second.end_time <= first.end_time
    return "full" if first_inside or second_inside else "partial"


def detect_conflicts(candidate: CalendarEvent, existing: Iterable[CalendarEvent]) -> list[ConflictRecord]:
    """Return one ConflictRecord per existing event that overlaps the candidate.

    The result follows the iteration order of ``existing``; use
    :func:`sort_conflicts` when a stable order is needed.
    """
    if candidate.end_time <= candidate.start_time:
        return []

    conflicts: list[ConflictRecord] = []
    for event in existing:
        if candidate.id is not None and event.id == candidate.id:
            continue
        if event.end_time <= event.start_time:
            continue
        window = overlap_window(candidate, event)
        if window is None:
            continue
        overlap_start, overlap_end = window
        conflicts.append(
            ConflictRecord(
                existing_event=event,
                overlap_minutes=int((overlap_end - overlap_start).total_seconds() // 60),
                type=classify_overlap(candidate, event),
                overlap_start=overlap_start,
                overlap_end=overlap_end,
            )
        )
    return conflicts


def sort_conflicts(conflicts: Iterable[ConflictRecord]) -> list[ConflictRecord]:
    return sorted(conflicts, key=lambda c: (c.existing_event.start_time, c.overlap_start))
