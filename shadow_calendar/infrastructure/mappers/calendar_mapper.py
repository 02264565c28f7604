from __future__ import annotations

from datetime import datetime, timezone

from shadow_calendar.domain.value_objects.schedule import (
    CalendarEvent,
    CommuteDetails,
    Coordinates,
    EventLocation,
)
from shadow_calendar.models.calendar_event import CalendarEvent as CalendarEventModel

_COMMUTE_COLUMNS = (
    "served_event_id",
    "transit_mode",
    "lynx_route",
    "transit_time_minutes",
    "transit_transfers",
    "transit_walking_minutes",
)


def to_utc(value: datetime) -> datetime:
    """Naive values come back from SQLite and are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CalendarEventMapper:
    """Maps calendar rows to domain events and back.

    The commute columns form a tagged union on ``type``: a row that breaks it
    is rejected here instead of leaking into the conflict detector.
    """

    @staticmethod
    def to_domain(row: CalendarEventModel) -> CalendarEvent:
        commute = None
        if row.type == "commute":
            if row.transit_mode is None or row.transit_time_minutes is None:
                raise ValueError(f"commute row {row.id} is missing transit details")
            commute = CommuteDetails(
                served_event_id=row.served_event_id,
                transit_mode=row.transit_mode,
                transit_time_minutes=row.transit_time_minutes,
                lynx_route=row.lynx_route,
                transfers=row.transit_transfers or 0,
                walking_minutes=row.transit_walking_minutes or 0,
            )
        elif any(getattr(row, column) is not None for column in _COMMUTE_COLUMNS):
            raise ValueError(f"{row.type} row {row.id} carries commute details")

        location = None
        if row.location_address or (row.location_lat is not None and row.location_lng is not None):
            coordinates = None
            if row.location_lat is not None and row.location_lng is not None:
                coordinates = Coordinates(lat=row.location_lat, lng=row.location_lng)
            location = EventLocation(address=row.location_address, coordinates=coordinates)

        return CalendarEvent(
            id=row.id,
            user_id=row.user_id,
            type=row.type,
            start_time=to_utc(row.start_time),
            end_time=to_utc(row.end_time),
            title=row.title,
            description=row.description,
            job_id=row.job_id,
            application_id=row.application_id,
            interview_id=row.interview_id,
            location=location,
            commute=commute,
        )

    @staticmethod
    def to_values(event: CalendarEvent) -> dict:
        """Column values for ``event``; the id and bookkeeping columns are left to the caller."""
        location = event.location or EventLocation()
        commute = event.commute
        return {
            "user_id": event.user_id,
            "type": event.type,
            "title": event.title,
            "description": event.description,
            "start_time": to_utc(event.start_time),
            "end_time": to_utc(event.end_time),
            "job_id": event.job_id,
            "application_id": event.application_id,
            "interview_id": event.interview_id,
            "location_address": location.address,
            "location_lat": location.coordinates.lat if location.coordinates else None,
            "location_lng": location.coordinates.lng if location.coordinates else None,
            "served_event_id": commute.served_event_id if commute else None,
            "transit_mode": commute.transit_mode if commute else None,
            "lynx_route": commute.lynx_route if commute else None,
            "transit_time_minutes": commute.transit_time_minutes if commute else None,
            "transit_transfers": commute.transfers if commute else None,
            "transit_walking_minutes": commute.walking_minutes if commute else None,
        }

    @staticmethod
    def to_model(event: CalendarEvent) -> CalendarEventModel:
        row = CalendarEventModel(**CalendarEventMapper.to_values(event))
        if event.id is not None:
            row.id = event.id
        return row
