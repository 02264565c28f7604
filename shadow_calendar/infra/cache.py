from __future__ import annotations

import json
import time
from collections import OrderedDict
from typing import Any, Callable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from shadow_calendar.core.logging import log
from shadow_calendar.ports.transit import CacheStore


class InMemoryTTLCache:
    """Per-process cache with time-based expiry and a hard size bound.

    When full, the oldest inserted entry is evicted first.
    """

    def __init__(self, *, ttl_seconds: int, max_entries: int, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: Any) -> None:
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = (self._clock() + self.ttl_seconds, value)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)


class RedisTTLCache:
    """Shared cache on Redis; values are stored as JSON with SETEX.

    Redis being down is treated as a miss so lookups keep working uncached.
    """

    def __init__(self, redis: Redis, *, namespace: str, ttl_seconds: int):
        self.redis = redis
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds

    def _key(self, key: str) -> str:
        return f"cache:{self.namespace}:{key}"

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self.redis.get(self._key(key))
        except RedisError as exc:
            log.warning("cache_get_failed", namespace=self.namespace, error=str(exc))
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            return None

    async def set(self, key: str, value: Any) -> None:
        try:
            await self.redis.setex(self._key(key), self.ttl_seconds, json.dumps(value))
        except RedisError as exc:
            log.warning("cache_set_failed", namespace=self.namespace, error=str(exc))


def build_cache(
    backend: str,
    *,
    namespace: str,
    ttl_seconds: int,
    max_entries: int,
    redis_factory: Callable[[], Redis] | None = None,
) -> CacheStore:
    if backend == "redis":
        if redis_factory is None:
            raise RuntimeError("redis cache backend requires a redis client")
        return RedisTTLCache(redis_factory(), namespace=namespace, ttl_seconds=ttl_seconds)
    return InMemoryTTLCache(ttl_seconds=ttl_seconds, max_entries=max_entries)
