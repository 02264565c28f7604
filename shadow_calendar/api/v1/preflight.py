from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shadow_calendar.api.deps import client_timezone, get_current_user, home_coordinates
from shadow_calendar.core.config import settings
from shadow_calendar.core.response import ok
from shadow_calendar.db.session import get_db
from shadow_calendar.infrastructure.di import get_preflight_projector
from shadow_calendar.infrastructure.mappers.calendar_mapper import CalendarEventMapper
from shadow_calendar.models.user import User
from shadow_calendar.repositories import calendar_repo
from shadow_calendar.schemas.preflight import PreflightIn, PreflightOut
from shadow_calendar.services.calendar.preflight import PreflightProjector
from shadow_calendar.services.calendar.shift_patterns import normalize_employment_type
from shadow_calendar.services.observability import record_preflight_metric

router = APIRouter(prefix="/calendar")


@router.post("/preflight")
async def preflight_check(
    request: Request,
    body: PreflightIn,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    projector: PreflightProjector = Depends(get_preflight_projector),
):
    """Would this job fit the user's schedule and commute tolerance? Nothing is stored."""
    window_start = datetime.now(timezone.utc)
    window_end = window_start + timedelta(days=settings.PREFLIGHT_HORIZON_DAYS)
    rows = await calendar_repo.list_range(db, user_id=current_user.id, start=window_start, end=window_end)
    existing = [CalendarEventMapper.to_domain(r) for r in rows]

    job_location = None
    if body.job_location is not None and projector.synthesizer is not None:
        job_location = await projector.synthesizer.resolve_location(body.job_location.to_domain())

    max_commute = body.max_commute_minutes or current_user.max_commute_minutes or settings.DEFAULT_MAX_COMMUTE_MINUTES
    result = await projector.preflight(
        [s.to_domain() for s in body.shifts],
        body.employment_type,
        existing,
        home_coordinates(current_user),
        job_location,
        max_commute_minutes=max_commute,
        window_start=window_start,
        window_end=window_end,
        tz=client_timezone(request),
        mode=body.transit_mode or current_user.transport_mode or settings.DEFAULT_TRANSIT_MODE,
    )

    record_preflight_metric(
        user_id=str(current_user.id),
        employment_type=normalize_employment_type(body.employment_type) if not body.shifts else "custom",
        shift_slots=len(result.shifts),
        conflicts=len(result.conflicts),
        has_commute_conflict=result.has_commute_conflict,
        transit_available=result.transit_info is not None,
        request_id=request.state.request_id,
    )
    return ok(request, PreflightOut.from_result(result, job_id=body.job_id))
