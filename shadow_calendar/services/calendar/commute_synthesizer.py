from __future__ import annotations

from datetime import datetime, timedelta

from shadow_calendar.core.logging import log
from shadow_calendar.domain.value_objects.schedule import (
    COMMUTE_SERVED_TYPES,
    CalendarEvent,
    CommuteDetails,
    Coordinates,
    EventLocation,
    TransitEstimate,
    TransitMode,
)
from shadow_calendar.ports.transit import Geocoder, GeocodingError, TransitProvider, TransitProviderError
from shadow_calendar.services.observability import log_provider_degraded


class CommuteSynthesizer:
    """Derives the travel block that precedes a shift or interview.

    Synthesis is best-effort: every provider failure ends up as ``None`` and
    never reaches the caller as an exception. Whether the resulting block
    collides with anything is for the caller to check.
    """

    def __init__(self, transit: TransitProvider, geocoder: Geocoder | None = None):
        self.transit = transit
        self.geocoder = geocoder

    async def resolve_location(self, location: EventLocation | None) -> Coordinates | None:
        if location is None:
            return None
        if location.coordinates is not None:
            return location.coordinates
        address = (location.address or "").strip()
        if not address or self.geocoder is None:
            return None
        try:
            return await self.geocoder.geocode(address)
        except GeocodingError as exc:
            log_provider_degraded(provider="geocoder", operation="geocode", reason=str(exc))
            return None
        except Exception as exc:  # noqa: BLE001
            log.exception("geocode_unexpected_error", error=str(exc))
            return None

    async def fetch_transit(
        self,
        origin: Coordinates,
        destination: Coordinates,
        mode: TransitMode,
        *,
        arrive_by: datetime | None = None,
    ) -> TransitEstimate | None:
        try:
            return await self.transit.lookup(origin, destination, mode, arrive_by=arrive_by)
        except TransitProviderError as exc:
            log_provider_degraded(provider="transit", operation="lookup", reason=str(exc), mode=mode)
            return None
        except Exception as exc:  # noqa: BLE001
            # a broken adapter must not take the served event down with it
            log.exception("transit_lookup_unexpected_error", mode=mode, error=str(exc))
            return None

    async def synthesize(
        self,
        served_event: CalendarEvent,
        home_location: Coordinates,
        mode: TransitMode = "lynx",
    ) -> CalendarEvent | None:
        if served_event.type not in COMMUTE_SERVED_TYPES:
            raise ValueError(f"commute blocks are only synthesized for {sorted(COMMUTE_SERVED_TYPES)} events")

        destination = await self.resolve_location(served_event.location)
        if destination is None:
            log.info("commute_skipped_no_location", served_event_id=str(served_event.id))
            return None

        transit = await self.fetch_transit(home_location, destination, mode, arrive_by=served_event.start_time)
        if transit is None or transit.duration_minutes <= 0:
            log.info("commute_skipped_no_route", served_event_id=str(served_event.id), mode=mode)
            return None

        return build_commute_event(served_event, transit, mode)


def build_commute_event(served_event: CalendarEvent, transit: TransitEstimate, mode: TransitMode) -> CalendarEvent:
    """Commute block ending exactly when ``served_event`` starts."""
    duration = transit.duration_minutes
    summary = transit.route_summary or mode
    return CalendarEvent(
        user_id=served_event.user_id,
        type="commute",
        start_time=served_event.start_time - timedelta(minutes=duration),
        end_time=served_event.start_time,
        title=f"Commute to {served_event.title or 'appointment'}",
        description=f"{summary} - {duration} min",
        job_id=served_event.job_id,
        application_id=served_event.application_id,
        interview_id=served_event.interview_id,
        commute=CommuteDetails(
            served_event_id=served_event.id,
            transit_mode=mode,
            transit_time_minutes=duration,
            lynx_route=transit.route_summary or None,
            transfers=transit.transfers,
            walking_minutes=transit.walking_minutes,
        ),
    )
