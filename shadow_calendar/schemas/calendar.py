from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from shadow_calendar.domain.value_objects.schedule import (
    CalendarEvent,
    CommuteDetails,
    ConflictRecord,
    EventType,
    OverlapType,
    TransitMode,
)
from shadow_calendar.schemas.common import LocationIn, LocationOut


class EventCreateIn(BaseModel):
    type: EventType
    start_time: datetime
    end_time: datetime
    title: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    job_id: uuid.UUID | None = None
    application_id: uuid.UUID | None = None
    interview_id: uuid.UUID | None = None
    location: LocationIn | None = None


class EventUpdateIn(BaseModel):
    """Only the fields present in the request body are replaced."""

    type: EventType | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    title: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    job_id: uuid.UUID | None = None
    application_id: uuid.UUID | None = None
    interview_id: uuid.UUID | None = None
    location: LocationIn | None = None


class CommuteOut(BaseModel):
    served_event_id: uuid.UUID | None
    transit_mode: TransitMode
    lynx_route: str | None
    transit_time_minutes: int
    transfers: int
    walking_minutes: int

    @classmethod
    def from_domain(cls, commute: CommuteDetails) -> "CommuteOut":
        return cls(
            served_event_id=commute.served_event_id,
            transit_mode=commute.transit_mode,
            lynx_route=commute.lynx_route,
            transit_time_minutes=commute.transit_time_minutes,
            transfers=commute.transfers,
            walking_minutes=commute.walking_minutes,
        )


class EventOut(BaseModel):
    id: uuid.UUID | None
    type: EventType
    start_time: datetime
    end_time: datetime
    title: str | None
    description: str | None
    job_id: uuid.UUID | None
    application_id: uuid.UUID | None
    interview_id: uuid.UUID | None
    location: LocationOut | None
    commute: CommuteOut | None

    @classmethod
    def from_domain(cls, event: CalendarEvent) -> "EventOut":
        return cls(
            id=event.id,
            type=event.type,
            start_time=event.start_time,
            end_time=event.end_time,
            title=event.title,
            description=event.description,
            job_id=event.job_id,
            application_id=event.application_id,
            interview_id=event.interview_id,
            location=LocationOut.from_domain(event.location),
            commute=CommuteOut.from_domain(event.commute) if event.commute else None,
        )


class ConflictOut(BaseModel):
    event_id: uuid.UUID | None
    event_title: str
    event_type: EventType
    overlap_minutes: int
    conflict_type: OverlapType
    overlap_start: datetime
    overlap_end: datetime

    @classmethod
    def from_record(cls, record: ConflictRecord) -> "ConflictOut":
        existing = record.existing_event
        return cls(
            event_id=existing.id,
            event_title=existing.title or "Scheduled event",
            event_type=existing.type,
            overlap_minutes=record.overlap_minutes,
            conflict_type=record.type,
            overlap_start=record.overlap_start,
            overlap_end=record.overlap_end,
        )


class EventWriteOut(BaseModel):
    event: EventOut
    commute_event: EventOut | None = None
    commute_conflicts: list[ConflictOut] = Field(default_factory=list)
    message: str


class EventListOut(BaseModel):
    items: list[EventOut]
    start: datetime
    end: datetime


class AvailabilityOut(BaseModel):
    slots: list[datetime]
    duration_minutes: int


class WeeklyHoursOut(BaseModel):
    week_start: datetime
    shift_hours: float
