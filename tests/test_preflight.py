from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from shadow_calendar.domain.value_objects.schedule import CalendarEvent, TransitEstimate, TypicalShift
from shadow_calendar.services.calendar.commute_synthesizer import CommuteSynthesizer
from shadow_calendar.services.calendar.preflight import PreflightProjector, collapse_conflicts, project_shifts
from shadow_calendar.services.calendar.conflict_detector import detect_conflicts
from tests.conftest import HOME, JOB_SITE, FakeTransitProvider, utc

USER = uuid.uuid4()
# Monday
WINDOW_START = utc(2025, 3, 3)
WINDOW_END = WINDOW_START + timedelta(days=14)


def _block(start, end, **kwargs) -> CalendarEvent:
    return CalendarEvent(id=uuid.uuid4(), user_id=USER, type="block", start_time=start, end_time=end, **kwargs)


def _projector(estimate: TransitEstimate | None = None) -> tuple[PreflightProjector, FakeTransitProvider]:
    provider = FakeTransitProvider(estimate)
    return PreflightProjector(CommuteSynthesizer(provider)), provider


async def _run(projector, existing=(), *, shifts=None, employment_type="full-time", home=HOME, job=JOB_SITE, max_commute=30):
    return await projector.preflight(
        shifts,
        employment_type,
        list(existing),
        home,
        job,
        max_commute_minutes=max_commute,
        window_start=WINDOW_START,
        window_end=WINDOW_END,
        tz=timezone.utc,
    )


async def test_long_commute_flags_commute_conflict():
    projector, _ = _projector(TransitEstimate(duration_minutes=45, route_summary="Route 8"))

    result = await _run(projector)

    assert result.has_commute_conflict
    assert not result.has_schedule_conflict
    assert result.can_apply
    assert result.transit_info.duration_minutes == 45
    assert result.max_commute_minutes == 30


async def test_short_commute_is_fine():
    projector, _ = _projector(TransitEstimate(duration_minutes=25))

    result = await _run(projector)

    assert not result.has_commute_conflict


async def test_no_route_is_reported_not_penalized():
    projector, provider = _projector(None)

    result = await _run(projector)

    assert result.transit_info is None
    assert not result.has_commute_conflict
    assert len(provider.calls) == 1


async def test_missing_home_skips_transit_but_still_checks_schedule():
    projector, provider = _projector(TransitEstimate(duration_minutes=90))
    clash = _block(utc(2025, 3, 4, 12), utc(2025, 3, 4, 13))

    result = await _run(projector, [clash], home=None)

    assert provider.calls == []
    assert result.transit_info is None
    assert result.has_schedule_conflict
    assert not result.can_apply


async def test_one_long_event_is_reported_at_most_twice():
    projector, _ = _projector(None)
    # Monday morning through Wednesday evening hits three projected shifts
    vacation = _block(utc(2025, 3, 3, 8), utc(2025, 3, 5, 20), title="Trip")

    result = await _run(projector, [vacation])

    assert len(result.conflicts) == 2
    assert {c.existing_event.id for c in result.conflicts} == {vacation.id}
    assert [c.overlap_start for c in result.conflicts] == [utc(2025, 3, 3, 9), utc(2025, 3, 4, 9)]


async def test_custom_shifts_replace_employment_defaults():
    projector, _ = _projector(None)
    tuesday_noon = _block(utc(2025, 3, 4, 12), utc(2025, 3, 4, 13))
    sunday_only = [TypicalShift(day_of_week=0, start_hour=10, end_hour=14)]

    result = await _run(projector, [tuesday_noon], shifts=sunday_only)

    assert result.shifts == sunday_only
    assert not result.has_schedule_conflict


async def test_missing_employment_type_uses_full_time():
    projector, _ = _projector(None)

    result = await _run(projector, employment_type=None)

    assert sorted(s.day_of_week for s in result.shifts) == [1, 2, 3, 4, 5]


async def test_commute_block_conflicts_are_advisory():
    projector, _ = _projector(TransitEstimate(duration_minutes=25))
    # ends inside the Monday 08:35-09:00 commute but before the shift
    school_run = _block(utc(2025, 3, 3, 8), utc(2025, 3, 3, 8, 45))

    result = await _run(projector, [school_run])

    assert not result.has_schedule_conflict
    assert not result.has_commute_conflict
    assert len(result.commute_block_conflicts) == 1
    assert result.commute_block_conflicts[0].overlap_minutes == 10


def test_projection_uses_client_timezone():
    tz = ZoneInfo("America/New_York")
    start = datetime(2025, 1, 6, tzinfo=tz)

    occurrences = project_shifts(
        [TypicalShift(day_of_week=d, start_hour=9, end_hour=17) for d in (1, 2, 3, 4, 5)],
        window_start=start,
        window_end=start + timedelta(days=7),
        tz=tz,
    )

    assert len(occurrences) == 5
    assert occurrences[0].start_time.astimezone(timezone.utc) == utc(2025, 1, 6, 14)
    assert [o.start_time for o in occurrences] == sorted(o.start_time for o in occurrences)


def test_projection_drops_occurrences_outside_window():
    start = utc(2025, 3, 3, 12)
    occurrences = project_shifts(
        [TypicalShift(day_of_week=1, start_hour=9, end_hour=11), TypicalShift(day_of_week=1, start_hour=13, end_hour=15)],
        window_start=start,
        window_end=start + timedelta(days=1),
        tz=timezone.utc,
    )

    assert [(o.start_time, o.end_time) for o in occurrences] == [(utc(2025, 3, 3, 13), utc(2025, 3, 3, 15))]


def test_collapse_keeps_first_entries_per_event():
    existing = _block(utc(2025, 3, 3, 0), utc(2025, 3, 10, 0))
    candidates = [
        CalendarEvent(user_id=USER, type="shift", start_time=utc(2025, 3, d, 9), end_time=utc(2025, 3, d, 17))
        for d in (3, 4, 5, 6)
    ]
    raw = [c for candidate in candidates for c in detect_conflicts(candidate, [existing])]

    collapsed = collapse_conflicts(raw, max_per_event=2)

    assert len(raw) == 4
    assert collapsed == raw[:2]
