from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException, Request
from redis.exceptions import RedisError

from shadow_calendar.core.config import settings
from shadow_calendar.core.logging import log
from shadow_calendar.core.response import err
from shadow_calendar.infra.redis_client import get_redis, redis_enabled


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _rl_key(prefix: str, request: Request) -> str:
    return f"rl:{prefix}:{_client_ip(request)}"


def redis_rate_limit(*, key_prefix: str, limit: int, window_seconds: int) -> Callable:
    """Fixed-window counter on Redis; without REDIS_URL the limit is off."""

    async def _dep(request: Request):
        if not redis_enabled():
            return

        redis = get_redis()
        key = _rl_key(key_prefix, request)
        try:
            cnt = await redis.incr(key)
            if cnt == 1:
                await redis.expire(key, window_seconds)
            ttl = await redis.ttl(key) if cnt > limit else None
        except RedisError as exc:
            log.warning("rate_limit_unavailable", key_prefix=key_prefix, error=str(exc))
            return

        if cnt > limit:
            raise HTTPException(
                status_code=429,
                detail=err(
                    request,
                    "rate_limited",
                    "Too many requests",
                    details={"retry_after_seconds": max(0, int(ttl if ttl is not None else window_seconds))},
                ),
            )

    return Depends(_dep)


transit_rate_limit = redis_rate_limit(
    key_prefix="transit",
    limit=settings.TRANSIT_RL_LIMIT,
    window_seconds=settings.TRANSIT_RL_WINDOW_SECONDS,
)
