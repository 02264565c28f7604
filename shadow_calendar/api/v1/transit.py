from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from shadow_calendar.api.deps import client_timezone, get_current_user, home_coordinates, localize
from shadow_calendar.core.config import settings
from shadow_calendar.core.response import err, ok
from shadow_calendar.domain.value_objects.schedule import Coordinates
from shadow_calendar.infrastructure.di import get_commute_synthesizer
from shadow_calendar.middleware.rate_limit import transit_rate_limit
from shadow_calendar.models.user import User
from shadow_calendar.schemas.common import LocationIn
from shadow_calendar.schemas.preflight import TransitInfoOut
from shadow_calendar.schemas.transit import (
    JobTransitOut,
    TransitJobsIn,
    TransitJobsOut,
    TransitLookupIn,
    TransitLookupOut,
)
from shadow_calendar.services.calendar.commute_synthesizer import CommuteSynthesizer
from shadow_calendar.services.transit_batch import LOCATION_UNKNOWN, NO_TRANSIT, enrich_jobs_with_transit

router = APIRouter(prefix="/transit")


async def _resolve(synthesizer: CommuteSynthesizer, location: LocationIn | None) -> Coordinates | None:
    if location is None:
        return None
    return await synthesizer.resolve_location(location.to_domain())


@router.post("/lookup", dependencies=[transit_rate_limit])
async def lookup_transit(
    request: Request,
    body: TransitLookupIn,
    current_user: User = Depends(get_current_user),
    synthesizer: CommuteSynthesizer = Depends(get_commute_synthesizer),
):
    origin = await _resolve(synthesizer, body.origin)
    destination = await _resolve(synthesizer, body.destination)
    if origin is None or destination is None:
        return ok(request, TransitLookupOut(accessible=False, summary=LOCATION_UNKNOWN))

    arrive_by = localize(body.arrive_by, client_timezone(request)) if body.arrive_by else None
    mode = body.mode or current_user.transport_mode or settings.DEFAULT_TRANSIT_MODE
    estimate = await synthesizer.fetch_transit(origin, destination, mode, arrive_by=arrive_by)
    if estimate is None:
        return ok(request, TransitLookupOut(accessible=False, summary=NO_TRANSIT))

    return ok(
        request,
        TransitLookupOut(accessible=True, summary=estimate.route_summary, transit=TransitInfoOut.from_domain(estimate)),
    )


@router.post("/jobs", dependencies=[transit_rate_limit])
async def enrich_jobs(
    request: Request,
    body: TransitJobsIn,
    current_user: User = Depends(get_current_user),
    synthesizer: CommuteSynthesizer = Depends(get_commute_synthesizer),
):
    if len(body.jobs) > settings.TRANSIT_BATCH_MAX_JOBS:
        raise HTTPException(
            status_code=422,
            detail=err(
                request,
                "validation_error",
                f"Maximum {settings.TRANSIT_BATCH_MAX_JOBS} jobs per request",
                details={"max_jobs": settings.TRANSIT_BATCH_MAX_JOBS, "received": len(body.jobs)},
            ),
        )

    origin = await _resolve(synthesizer, body.user_location) if body.user_location else home_coordinates(current_user)
    if origin is None:
        raise HTTPException(
            status_code=422,
            detail=err(request, "validation_error", "Could not resolve user location"),
        )

    results = await enrich_jobs_with_transit(
        origin,
        [job.to_domain() for job in body.jobs],
        transit=synthesizer.transit,
        geocoder=synthesizer.geocoder,
        mode=body.mode or current_user.transport_mode or settings.DEFAULT_TRANSIT_MODE,
        max_commute=body.max_commute,
        concurrency=settings.TRANSIT_BATCH_CONCURRENCY,
    )
    return ok(
        request,
        TransitJobsOut(
            jobs=[JobTransitOut.from_domain(r) for r in results],
            user_location={"lat": origin.lat, "lng": origin.lng},
            total_jobs=len(body.jobs),
            accessible_jobs=sum(1 for r in results if r.accessible),
            filtered_by_commute=body.max_commute is not None and body.max_commute > 0,
        ),
    )
