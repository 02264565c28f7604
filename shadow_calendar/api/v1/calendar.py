from __future__ import annotations

import dataclasses
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shadow_calendar.api.deps import client_timezone, get_current_user, home_coordinates, localize
from shadow_calendar.core.config import settings
from shadow_calendar.core.logging import log
from shadow_calendar.core.response import err, ok
from shadow_calendar.db.session import get_db
from shadow_calendar.domain.value_objects.schedule import (
    COMMUTE_SERVED_TYPES,
    CalendarEvent,
    ConflictRecord,
    Coordinates,
    TransitMode,
)
from shadow_calendar.infrastructure.di import get_commute_synthesizer
from shadow_calendar.infrastructure.mappers.calendar_mapper import CalendarEventMapper
from shadow_calendar.models.user import User
from shadow_calendar.repositories import calendar_repo
from shadow_calendar.schemas.calendar import (
    AvailabilityOut,
    ConflictOut,
    EventCreateIn,
    EventListOut,
    EventOut,
    EventUpdateIn,
    EventWriteOut,
    WeeklyHoursOut,
)
from shadow_calendar.services.calendar.availability import find_available_slots, week_start, weekly_shift_hours
from shadow_calendar.services.calendar.commute_synthesizer import CommuteSynthesizer
from shadow_calendar.services.calendar.conflict_detector import detect_conflicts, sort_conflicts
from shadow_calendar.services.observability import record_conflict_rejection

router = APIRouter(prefix="/calendar")


def _validation_error(request: Request, message: str) -> HTTPException:
    return HTTPException(status_code=422, detail=err(request, "validation_error", message))


def _not_found(request: Request) -> HTTPException:
    return HTTPException(status_code=404, detail=err(request, "not_found", "Event not found"))


def _conflict_payload(conflicts: list[ConflictRecord]) -> list[ConflictOut]:
    return [ConflictOut.from_record(c) for c in sort_conflicts(conflicts)]


def _resolve_range(request: Request, start: datetime | None, end: datetime | None) -> tuple[datetime, datetime]:
    tz = client_timezone(request)
    range_start = localize(start, tz) if start else week_start(datetime.now(timezone.utc), tz)
    range_end = localize(end, tz) if end else range_start + timedelta(days=7)
    if range_end <= range_start:
        raise _validation_error(request, "end must be after start")
    return range_start, range_end


async def _load_events(
    db: AsyncSession,
    user_id: uuid.UUID,
    start: datetime,
    end: datetime,
    *,
    exclude_ids: set[uuid.UUID] | None = None,
) -> list[CalendarEvent]:
    rows = await calendar_repo.list_range(db, user_id=user_id, start=start, end=end)
    return [CalendarEventMapper.to_domain(r) for r in rows if not exclude_ids or r.id not in exclude_ids]


async def _conflicts_for(
    db: AsyncSession,
    candidate: CalendarEvent,
    *,
    exclude_ids: set[uuid.UUID] | None = None,
) -> list[ConflictRecord]:
    pad = timedelta(hours=settings.CONFLICT_LOOKAROUND_HOURS)
    existing = await _load_events(
        db, candidate.user_id, candidate.start_time - pad, candidate.end_time + pad, exclude_ids=exclude_ids
    )
    return detect_conflicts(candidate, existing)


async def _attach_commute(
    request: Request,
    db: AsyncSession,
    home: Coordinates | None,
    mode: TransitMode,
    event: CalendarEvent,
    synthesizer: CommuteSynthesizer,
) -> tuple[CalendarEvent | None, list[ConflictRecord]]:
    """Synthesize and store the commute in front of ``event`` as its own write.

    The served event is already committed; anything going wrong here only
    means the commute is reported as absent. A failed write rolls the session
    back, which expires every loaded row, so callers pass plain values only.
    """
    if not event.is_location_bound or home is None:
        return None, []

    commute = await synthesizer.synthesize(event, home, mode)
    if commute is None:
        return None, []

    conflicts = await _conflicts_for(db, commute)
    if conflicts:
        log.info(
            "commute_not_stored_conflict",
            request_id=request.state.request_id,
            served_event_id=str(event.id),
            conflicts=len(conflicts),
        )
        return None, conflicts

    try:
        row = await calendar_repo.create(db, CalendarEventMapper.to_model(commute))
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        log.error(
            "commute_write_failed",
            request_id=request.state.request_id,
            served_event_id=str(event.id),
            error=str(exc),
        )
        return None, []
    return CalendarEventMapper.to_domain(row), []


async def _drop_serving_commutes(db: AsyncSession, user_id: uuid.UUID, event_id: uuid.UUID) -> list[uuid.UUID]:
    commutes = await calendar_repo.list_commutes_serving(db, user_id=user_id, served_event_id=event_id)
    ids = [c.id for c in commutes]
    await calendar_repo.soft_delete(db, user_id=user_id, event_ids=ids)
    return ids


def _write_message(commute: CalendarEvent | None, commute_conflicts: list[ConflictRecord], verb: str) -> str:
    if commute is not None:
        return f"Event {verb} with commute"
    if commute_conflicts:
        return f"Event {verb}; commute overlaps existing events and was not added"
    return f"Event {verb}"


@router.get("/events")
async def list_events(
    request: Request,
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    range_start, range_end = _resolve_range(request, start, end)
    events = await _load_events(db, current_user.id, range_start, range_end)

    log.info("calendar_events_list", request_id=request.state.request_id, user_id=str(current_user.id), count=len(events))
    return ok(
        request,
        EventListOut(items=[EventOut.from_domain(e) for e in events], start=range_start, end=range_end),
    )


@router.post("/events", status_code=201)
async def create_event(
    request: Request,
    body: EventCreateIn,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    synthesizer: CommuteSynthesizer = Depends(get_commute_synthesizer),
):
    if body.type == "commute":
        raise _validation_error(request, "Commute events are created automatically")

    tz = client_timezone(request)
    try:
        candidate = CalendarEvent(
            user_id=current_user.id,
            type=body.type,
            start_time=localize(body.start_time, tz),
            end_time=localize(body.end_time, tz),
            title=body.title,
            description=body.description,
            job_id=body.job_id,
            application_id=body.application_id,
            interview_id=body.interview_id,
            location=body.location.to_domain() if body.location else None,
        )
    except ValueError as exc:
        raise _validation_error(request, str(exc)) from exc

    conflicts = await _conflicts_for(db, candidate)
    if conflicts:
        record_conflict_rejection(
            user_id=str(current_user.id),
            event_type=candidate.type,
            conflicts=len(conflicts),
            request_id=request.state.request_id,
        )
        raise HTTPException(
            status_code=409,
            detail=err(
                request,
                "schedule_conflict",
                "Event conflicts with existing schedule",
                details={"conflicts": _conflict_payload(conflicts)},
            ),
        )

    row = await calendar_repo.create(db, CalendarEventMapper.to_model(candidate))
    await db.commit()
    event = CalendarEventMapper.to_domain(row)

    commute, commute_conflicts = await _attach_commute(
        request, db, home_coordinates(current_user), current_user.transport_mode, event, synthesizer
    )

    log.info(
        "calendar_event_created",
        request_id=request.state.request_id,
        user_id=str(event.user_id),
        event_id=str(event.id),
        event_type=event.type,
        commute_event_id=str(commute.id) if commute else None,
    )
    return ok(
        request,
        EventWriteOut(
            event=EventOut.from_domain(event),
            commute_event=EventOut.from_domain(commute) if commute else None,
            commute_conflicts=_conflict_payload(commute_conflicts),
            message=_write_message(commute, commute_conflicts, "created"),
        ),
    )


@router.get("/events/{event_id}")
async def get_event(
    request: Request,
    event_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await calendar_repo.get_by_id(db, user_id=current_user.id, event_id=event_id)
    if row is None:
        raise _not_found(request)
    return ok(request, EventOut.from_domain(CalendarEventMapper.to_domain(row)))


@router.patch("/events/{event_id}")
async def update_event(
    request: Request,
    event_id: uuid.UUID,
    body: EventUpdateIn,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    synthesizer: CommuteSynthesizer = Depends(get_commute_synthesizer),
):
    row = await calendar_repo.get_by_id(db, user_id=current_user.id, event_id=event_id)
    if row is None:
        raise _not_found(request)
    if row.type == "commute":
        raise _validation_error(request, "Commute events are managed automatically")

    provided = body.model_dump(exclude_unset=True)
    if provided.get("type") == "commute":
        raise _validation_error(request, "Commute events are created automatically")

    current = CalendarEventMapper.to_domain(row)
    tz = client_timezone(request)
    changes: dict = {}
    for field in ("type", "title", "description", "job_id", "application_id", "interview_id"):
        if field in provided:
            changes[field] = getattr(body, field)
    for field in ("start_time", "end_time"):
        if field in provided:
            value = getattr(body, field)
            if value is None:
                raise _validation_error(request, f"{field} cannot be null")
            changes[field] = localize(value, tz)
    if "location" in provided:
        changes["location"] = body.location.to_domain() if body.location else None
    if changes.get("type", current.type) is None:
        raise _validation_error(request, "type cannot be null")

    try:
        updated = dataclasses.replace(current, **changes)
    except ValueError as exc:
        raise _validation_error(request, str(exc)) from exc

    serving = await calendar_repo.list_commutes_serving(db, user_id=current_user.id, served_event_id=event_id)
    # its own commutes are re-derived below, so they cannot block the move
    conflicts = await _conflicts_for(db, updated, exclude_ids={c.id for c in serving})
    if conflicts:
        record_conflict_rejection(
            user_id=str(current_user.id),
            event_type=updated.type,
            conflicts=len(conflicts),
            request_id=request.state.request_id,
        )
        raise HTTPException(
            status_code=409,
            detail=err(
                request,
                "schedule_conflict",
                "Event conflicts with existing schedule",
                details={"conflicts": _conflict_payload(conflicts)},
            ),
        )

    values = CalendarEventMapper.to_values(updated)
    row = await calendar_repo.update_fields(db, row, values)

    rederive = (
        updated.start_time != current.start_time
        or updated.location != current.location
        or updated.type != current.type
    )
    if rederive:
        await calendar_repo.soft_delete(db, user_id=current_user.id, event_ids=[c.id for c in serving])
    await db.commit()
    event = CalendarEventMapper.to_domain(row)

    commute: CalendarEvent | None = None
    commute_conflicts: list[ConflictRecord] = []
    if rederive and event.type in COMMUTE_SERVED_TYPES:
        commute, commute_conflicts = await _attach_commute(
            request, db, home_coordinates(current_user), current_user.transport_mode, event, synthesizer
        )

    log.info(
        "calendar_event_updated",
        request_id=request.state.request_id,
        user_id=str(event.user_id),
        event_id=str(event.id),
        fields=sorted(changes),
        commute_rederived=rederive,
    )
    return ok(
        request,
        EventWriteOut(
            event=EventOut.from_domain(event),
            commute_event=EventOut.from_domain(commute) if commute else None,
            commute_conflicts=_conflict_payload(commute_conflicts),
            message=_write_message(commute, commute_conflicts, "updated"),
        ),
    )


@router.delete("/events/{event_id}")
async def delete_event(
    request: Request,
    event_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await calendar_repo.get_by_id(db, user_id=current_user.id, event_id=event_id)
    if row is None:
        raise _not_found(request)

    commute_ids = await _drop_serving_commutes(db, current_user.id, event_id)
    await calendar_repo.soft_delete(db, user_id=current_user.id, event_ids=[event_id])
    await db.commit()

    log.info(
        "calendar_event_deleted",
        request_id=request.state.request_id,
        user_id=str(current_user.id),
        event_id=str(event_id),
        commutes_deleted=len(commute_ids),
    )
    return ok(request, {"deleted_ids": [event_id, *commute_ids], "message": "Event deleted"})


@router.get("/availability")
async def get_availability(
    request: Request,
    start: datetime = Query(...),
    end: datetime = Query(...),
    duration_minutes: int = Query(default=60, ge=1, le=24 * 60),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    range_start, range_end = _resolve_range(request, start, end)
    events = await _load_events(db, current_user.id, range_start, range_end)
    slots = find_available_slots(events, range_start, range_end, duration_minutes)
    return ok(request, AvailabilityOut(slots=slots, duration_minutes=duration_minutes))


@router.get("/weekly-hours")
async def get_weekly_hours(
    request: Request,
    week_start_at: datetime | None = Query(default=None, alias="week_start"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tz = client_timezone(request)
    start = localize(week_start_at, tz) if week_start_at else week_start(datetime.now(timezone.utc), tz)
    events = await _load_events(db, current_user.id, start, start + timedelta(days=7))
    return ok(request, WeeklyHoursOut(week_start=start, shift_hours=weekly_shift_hours(events, start)))
