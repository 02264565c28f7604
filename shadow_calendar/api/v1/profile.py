from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shadow_calendar.api.deps import get_current_user
from shadow_calendar.core.logging import log
from shadow_calendar.core.response import ok
from shadow_calendar.db.session import get_db
from shadow_calendar.domain.value_objects.schedule import EventLocation
from shadow_calendar.infrastructure.di import get_commute_synthesizer
from shadow_calendar.models.user import User
from shadow_calendar.repositories import user_repo
from shadow_calendar.schemas.profile import CommuteProfileIn, CommuteProfileOut
from shadow_calendar.services.calendar.commute_synthesizer import CommuteSynthesizer

router = APIRouter(prefix="/profile")


@router.get("/commute")
async def get_commute_profile(request: Request, current_user: User = Depends(get_current_user)):
    return ok(request, CommuteProfileOut.model_validate(current_user))


@router.put("/commute")
async def put_commute_profile(
    request: Request,
    body: CommuteProfileIn,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    synthesizer: CommuteSynthesizer = Depends(get_commute_synthesizer),
):
    values = body.model_dump(exclude_unset=True)
    # explicit nulls cannot clear the non-nullable preferences
    for key in ("transport_mode", "max_commute_minutes"):
        if key in values and values[key] is None:
            del values[key]

    # an address without coordinates is geocoded once here, not on every commute
    address = values.get("home_address")
    if address and values.get("home_lat") is None:
        coordinates = await synthesizer.resolve_location(EventLocation(address=address))
        values["home_lat"] = coordinates.lat if coordinates else None
        values["home_lng"] = coordinates.lng if coordinates else None

    user = await user_repo.update_profile(db, current_user, values)
    await db.commit()

    log.info(
        "commute_profile_updated",
        request_id=request.state.request_id,
        user_id=str(user.id),
        fields=sorted(values),
        home_resolved=user.home_lat is not None,
    )
    return ok(request, CommuteProfileOut.model_validate(user))
