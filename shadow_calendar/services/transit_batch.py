"""
Batch commute enrichment for job listings.

Every job is looked up independently under a shared concurrency bound. A
failure for one job turns into an "unknown" result for that job only.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field

from shadow_calendar.core.logging import log
from shadow_calendar.domain.value_objects.schedule import Coordinates, TransitEstimate, TransitMode
from shadow_calendar.ports.transit import Geocoder, GeocodingError, TransitProvider
from shadow_calendar.services.observability import record_transit_batch_metric

LOCATION_UNKNOWN = "Location unknown"
NO_TRANSIT = "No transit available"
LOOKUP_FAILED = "Error calculating"


@dataclass(frozen=True)
class JobLocation:
    id: str
    coordinates: Coordinates | None = None
    address: str | None = None


@dataclass(frozen=True)
class JobTransitResult:
    id: str
    transit_minutes: int | None
    summary: str
    route_identifiers: list[str] = field(default_factory=list)
    walking_minutes: int = 0
    transfers: int = 0
    distance_miles: float = 0.0
    estimated: bool = False

    @property
    def accessible(self) -> bool:
        return self.transit_minutes is not None

    @classmethod
    def unknown(cls, job_id: str, summary: str) -> "JobTransitResult":
        return cls(id=job_id, transit_minutes=None, summary=summary)

    @classmethod
    def from_estimate(cls, job_id: str, estimate: TransitEstimate) -> "JobTransitResult":
        return cls(
            id=job_id,
            transit_minutes=estimate.duration_minutes,
            summary=estimate.route_summary,
            route_identifiers=list(estimate.route_identifiers),
            walking_minutes=estimate.walking_minutes,
            transfers=estimate.transfers,
            distance_miles=estimate.distance_miles,
            estimated=estimate.estimated,
        )


def _sort_key(result: JobTransitResult) -> tuple[int, int]:
    if result.transit_minutes is None:
        return (1, 0)
    return (0, result.transit_minutes)


async def _lookup_one(
    job: JobLocation,
    origin: Coordinates,
    mode: TransitMode,
    transit: TransitProvider,
    geocoder: Geocoder | None,
) -> JobTransitResult:
    destination = job.coordinates
    if destination is None and job.address and geocoder is not None:
        try:
            destination = await geocoder.geocode(job.address)
        except GeocodingError as exc:
            log.warning("job_geocode_failed", job_id=job.id, error=str(exc))
            destination = None
    if destination is None:
        return JobTransitResult.unknown(job.id, LOCATION_UNKNOWN)

    estimate = await transit.lookup(origin, destination, mode)
    if estimate is None:
        return JobTransitResult.unknown(job.id, NO_TRANSIT)
    return JobTransitResult.from_estimate(job.id, estimate)


async def enrich_jobs_with_transit(
    origin: Coordinates,
    jobs: list[JobLocation],
    *,
    transit: TransitProvider,
    geocoder: Geocoder | None = None,
    mode: TransitMode = "lynx",
    max_commute: int | None = None,
    concurrency: int = 5,
) -> list[JobTransitResult]:
    """Commute for every job from ``origin``, shortest first, unknowns last.

    With a positive ``max_commute`` only jobs reachable within that many
    minutes are returned.
    """
    started = time.perf_counter()
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def guarded(job: JobLocation) -> JobTransitResult:
        async with semaphore:
            try:
                return await _lookup_one(job, origin, mode, transit, geocoder)
            except Exception as exc:  # noqa: BLE001
                log.warning("job_transit_failed", job_id=job.id, error=str(exc))
                return JobTransitResult.unknown(job.id, LOOKUP_FAILED)

    results = list(await asyncio.gather(*(guarded(job) for job in jobs)))

    if max_commute is not None and max_commute > 0:
        results = [r for r in results if r.transit_minutes is not None and r.transit_minutes <= max_commute]
    results.sort(key=_sort_key)

    record_transit_batch_metric(
        jobs=len(jobs),
        accessible=sum(1 for r in results if r.accessible),
        failed=sum(1 for r in results if r.summary == LOOKUP_FAILED),
        latency_ms=int((time.perf_counter() - started) * 1000),
    )
    return results
