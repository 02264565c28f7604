from __future__ import annotations

from datetime import datetime, timezone

from shadow_calendar.core.logging import log


def log_provider_request(
    *,
    provider: str,
    operation: str,
    status: str,
    latency_ms: int | None = None,
    cache_hit: bool = False,
    error: str | None = None,
):
    log.info(
        "provider_request",
        provider=provider,
        operation=operation,
        status=status,
        latency_ms=latency_ms,
        cache_hit=cache_hit,
        error=error,
        logged_at=datetime.now(timezone.utc).isoformat(),
    )


def log_provider_degraded(*, provider: str, operation: str, reason: str, **context):
    log.warning(
        "provider_degraded",
        provider=provider,
        operation=operation,
        reason=reason,
        logged_at=datetime.now(timezone.utc).isoformat(),
        **context,
    )


def record_conflict_rejection(*, user_id: str, event_type: str, conflicts: int, request_id: str | None = None):
    log.info(
        "schedule_conflict_rejected",
        request_id=request_id,
        user_id=user_id,
        event_type=event_type,
        conflicts=conflicts,
        logged_at=datetime.now(timezone.utc).isoformat(),
    )


def record_preflight_metric(
    *,
    user_id: str,
    employment_type: str,
    shift_slots: int,
    conflicts: int,
    has_commute_conflict: bool,
    transit_available: bool,
    request_id: str | None = None,
):
    log.info(
        "preflight_evaluated",
        request_id=request_id,
        user_id=user_id,
        employment_type=employment_type,
        shift_slots=shift_slots,
        conflicts=conflicts,
        has_commute_conflict=has_commute_conflict,
        transit_available=transit_available,
        logged_at=datetime.now(timezone.utc).isoformat(),
    )


def record_transit_batch_metric(*, jobs: int, accessible: int, failed: int, latency_ms: int):
    log.info(
        "transit_batch_metric",
        jobs=jobs,
        accessible=accessible,
        failed=failed,
        latency_ms=latency_ms,
        logged_at=datetime.now(timezone.utc).isoformat(),
    )
