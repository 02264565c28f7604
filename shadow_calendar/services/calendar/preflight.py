"""
Preflight feasibility check: "if I take this job, will it collide with my
life, and can I actually get there?"

The projector never writes anything. It projects a weekly shift pattern onto
the window the caller loaded events for, runs the conflict detector for every
projected occurrence and looks the commute up once.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Hashable, Iterable, Sequence

from shadow_calendar.domain.value_objects.schedule import (
    CalendarEvent,
    CommuteDetails,
    ConflictRecord,
    Coordinates,
    PreflightResult,
    TransitEstimate,
    TransitMode,
    TypicalShift,
)
from shadow_calendar.services.calendar.commute_synthesizer import CommuteSynthesizer
from shadow_calendar.services.calendar.conflict_detector import detect_conflicts
from shadow_calendar.services.calendar.shift_patterns import get_typical_shifts

# Projected occurrences are never persisted; they belong to nobody.
PROJECTION_USER_ID = uuid.UUID(int=0)


@dataclass(frozen=True)
class ShiftOccurrence:
    shift: TypicalShift
    start_time: datetime
    end_time: datetime


def project_shifts(
    pattern: Sequence[TypicalShift],
    *,
    window_start: datetime,
    window_end: datetime,
    tz: tzinfo,
) -> list[ShiftOccurrence]:
    """Concrete occurrences of ``pattern`` intersecting ``[window_start, window_end)``, oldest first."""
    if window_end <= window_start:
        return []

    # one extra day on each side so overnight shifts and tz offsets are not lost
    first_day = window_start.astimezone(tz).date() - timedelta(days=1)
    last_day = window_end.astimezone(tz).date() + timedelta(days=1)

    occurrences: list[ShiftOccurrence] = []
    day = first_day
    while day <= last_day:
        for shift in pattern:
            if not shift.matches(day):
                continue
            start, end = shift.occurrence_on(day, tz)
            if start < window_end and window_start < end:
                occurrences.append(ShiftOccurrence(shift=shift, start_time=start, end_time=end))
        day += timedelta(days=1)

    occurrences.sort(key=lambda occ: (occ.start_time, occ.end_time))
    return occurrences


def _event_key(event: CalendarEvent) -> Hashable:
    if event.id is not None:
        return event.id
    return (event.type, event.start_time, event.end_time, event.title)


def collapse_conflicts(conflicts: Iterable[ConflictRecord], *, max_per_event: int) -> list[ConflictRecord]:
    """Keep the first ``max_per_event`` conflicts per existing event, preserving order."""
    seen: dict[Hashable, int] = {}
    collapsed: list[ConflictRecord] = []
    for conflict in conflicts:
        key = _event_key(conflict.existing_event)
        count = seen.get(key, 0)
        if count >= max_per_event:
            continue
        seen[key] = count + 1
        collapsed.append(conflict)
    return collapsed


def exceeds_commute_tolerance(transit: TransitEstimate | None, max_commute_minutes: int) -> bool:
    """Missing transit data is reported, never penalized."""
    if transit is None:
        return False
    return transit.duration_minutes > max_commute_minutes


def _occurrence_event(occurrence: ShiftOccurrence) -> CalendarEvent:
    return CalendarEvent(
        user_id=PROJECTION_USER_ID,
        type="shift",
        start_time=occurrence.start_time,
        end_time=occurrence.end_time,
        title="Work Shift",
    )


def _commute_event(occurrence: ShiftOccurrence, transit: TransitEstimate, mode: TransitMode) -> CalendarEvent:
    return CalendarEvent(
        user_id=PROJECTION_USER_ID,
        type="commute",
        start_time=occurrence.start_time - timedelta(minutes=transit.duration_minutes),
        end_time=occurrence.start_time,
        title="Commute",
        commute=CommuteDetails(
            served_event_id=None,
            transit_mode=mode,
            transit_time_minutes=transit.duration_minutes,
            lynx_route=transit.route_summary or None,
            transfers=transit.transfers,
            walking_minutes=transit.walking_minutes,
        ),
    )


class PreflightProjector:
    def __init__(self, synthesizer: CommuteSynthesizer | None = None, *, max_conflicts_per_event: int = 2):
        self.synthesizer = synthesizer
        self.max_conflicts_per_event = max_conflicts_per_event

    async def preflight(
        self,
        shift_pattern: Sequence[TypicalShift] | None,
        employment_type: str | None,
        existing_events: Sequence[CalendarEvent],
        home_location: Coordinates | None,
        job_location: Coordinates | None,
        *,
        max_commute_minutes: int,
        window_start: datetime,
        window_end: datetime,
        tz: tzinfo,
        mode: TransitMode = "lynx",
    ) -> PreflightResult:
        pattern = list(shift_pattern) if shift_pattern else get_typical_shifts(employment_type)
        occurrences = project_shifts(pattern, window_start=window_start, window_end=window_end, tz=tz)

        raw_conflicts: list[ConflictRecord] = []
        for occurrence in occurrences:
            raw_conflicts.extend(detect_conflicts(_occurrence_event(occurrence), existing_events))
        conflicts = collapse_conflicts(raw_conflicts, max_per_event=self.max_conflicts_per_event)

        transit: TransitEstimate | None = None
        if home_location is not None and job_location is not None and self.synthesizer is not None:
            transit = await self.synthesizer.fetch_transit(home_location, job_location, mode)

        commute_block_conflicts: list[ConflictRecord] = []
        if transit is not None and transit.duration_minutes > 0:
            raw_commute: list[ConflictRecord] = []
            for occurrence in occurrences:
                raw_commute.extend(detect_conflicts(_commute_event(occurrence, transit, mode), existing_events))
            commute_block_conflicts = collapse_conflicts(raw_commute, max_per_event=self.max_conflicts_per_event)

        return PreflightResult(
            has_schedule_conflict=bool(conflicts),
            has_commute_conflict=exceeds_commute_tolerance(transit, max_commute_minutes),
            conflicts=conflicts,
            transit_info=transit,
            max_commute_minutes=max_commute_minutes,
            shifts=pattern,
            commute_block_conflicts=commute_block_conflicts,
        )
