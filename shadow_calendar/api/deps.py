from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shadow_calendar.core.config import settings
from shadow_calendar.core.response import err
from shadow_calendar.core.security import InvalidTokenError, decode_access_token
from shadow_calendar.db.session import get_db
from shadow_calendar.domain.value_objects.schedule import Coordinates
from shadow_calendar.models.user import User
from shadow_calendar.repositories import user_repo


def _unauthorized(request: Request, message: str) -> HTTPException:
    return HTTPException(status_code=401, detail=err(request, "unauthorized", message))


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise _unauthorized(request, "Bearer token is required")

    try:
        user_id = decode_access_token(authorization.split(" ", 1)[1].strip())
    except InvalidTokenError as exc:
        raise _unauthorized(request, str(exc)) from exc

    user = await user_repo.get_by_id(db, user_id)
    if user is None:
        raise _unauthorized(request, "unknown user")
    return user


def client_timezone(request: Request) -> ZoneInfo:
    # validated by RequestContextMiddleware
    return ZoneInfo(getattr(request.state, "client_timezone", None) or settings.DEFAULT_TIMEZONE)


def localize(value: datetime, tz: ZoneInfo) -> datetime:
    """Naive request datetimes are wall-clock times in the client's timezone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def home_coordinates(user: User) -> Coordinates | None:
    if user.home_lat is None or user.home_lng is None:
        return None
    return Coordinates(lat=user.home_lat, lng=user.home_lng)
