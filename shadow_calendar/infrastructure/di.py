from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from shadow_calendar.core.config import settings
from shadow_calendar.core.logging import log
from shadow_calendar.infra.cache import build_cache
from shadow_calendar.infra.redis_client import get_redis
from shadow_calendar.infrastructure.adapters.estimated_transit import EstimatedTransitProvider
from shadow_calendar.infrastructure.adapters.google_maps import GoogleDirectionsTransitProvider, GoogleGeocoder
from shadow_calendar.ports.transit import CacheStore, Geocoder, TransitProvider
from shadow_calendar.services.calendar.commute_synthesizer import CommuteSynthesizer
from shadow_calendar.services.calendar.preflight import PreflightProjector


@lru_cache
def get_geocode_cache() -> CacheStore:
    return build_cache(
        settings.CACHE_BACKEND,
        namespace="geocode",
        ttl_seconds=settings.GEOCODE_CACHE_TTL_SECONDS,
        max_entries=settings.GEOCODE_CACHE_MAX_ENTRIES,
        redis_factory=get_redis,
    )


@lru_cache
def get_transit_cache() -> CacheStore:
    return build_cache(
        settings.CACHE_BACKEND,
        namespace="transit",
        ttl_seconds=settings.TRANSIT_CACHE_TTL_SECONDS,
        max_entries=settings.TRANSIT_CACHE_MAX_ENTRIES,
        redis_factory=get_redis,
    )


@lru_cache
def get_transit_provider() -> TransitProvider:
    if not settings.GOOGLE_MAPS_API_KEY:
        log.warning("transit_provider_estimated", reason="GOOGLE_MAPS_API_KEY not set")
        return EstimatedTransitProvider()
    return GoogleDirectionsTransitProvider(
        api_key=settings.GOOGLE_MAPS_API_KEY,
        base_url=settings.GOOGLE_MAPS_BASE_URL,
        timeout_seconds=settings.TRANSIT_TIMEOUT_SECONDS,
        cache=get_transit_cache(),
    )


@lru_cache
def get_geocoder() -> Geocoder | None:
    if not settings.GOOGLE_MAPS_API_KEY:
        return None
    return GoogleGeocoder(
        api_key=settings.GOOGLE_MAPS_API_KEY,
        base_url=settings.GOOGLE_MAPS_BASE_URL,
        timeout_seconds=settings.TRANSIT_TIMEOUT_SECONDS,
        cache=get_geocode_cache(),
    )


def get_commute_synthesizer(
    transit: TransitProvider = Depends(get_transit_provider),
    geocoder: Geocoder | None = Depends(get_geocoder),
) -> CommuteSynthesizer:
    return CommuteSynthesizer(transit, geocoder)


def get_preflight_projector(
    synthesizer: CommuteSynthesizer = Depends(get_commute_synthesizer),
) -> PreflightProjector:
    return PreflightProjector(synthesizer, max_conflicts_per_event=settings.PREFLIGHT_MAX_CONFLICTS_PER_EVENT)
