from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt

from shadow_calendar.core.config import settings


class InvalidTokenError(Exception):
    pass


def create_access_token(user_id: uuid.UUID, *, ttl_seconds: int | None = None) -> str:
    """Mint a bearer token. Production tokens come from the identity service; this keeps tooling and tests honest."""
    now = datetime.now(timezone.utc)
    ttl = ttl_seconds if ttl_seconds is not None else settings.ACCESS_TOKEN_TTL_SECONDS
    payload = {"sub": str(user_id), "iat": now, "exp": now + timedelta(seconds=ttl)}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> uuid.UUID:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise InvalidTokenError("token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError("invalid token") from exc

    try:
        return uuid.UUID(str(payload.get("sub")))
    except ValueError as exc:
        raise InvalidTokenError("token subject is not a user id") from exc
