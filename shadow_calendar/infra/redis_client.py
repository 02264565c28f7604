from __future__ import annotations

from redis.asyncio import Redis

from shadow_calendar.core.config import settings

_redis: Redis | None = None


def redis_enabled() -> bool:
    return bool(settings.REDIS_URL)


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        if not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL is not set")
        _redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
