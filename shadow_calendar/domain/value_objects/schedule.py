from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Literal, get_args

EventType = Literal["shift", "commute", "interview", "block"]
TransitMode = Literal["lynx", "car", "rideshare", "walk"]
OverlapType = Literal["full", "partial"]

EVENT_TYPES: frozenset[str] = frozenset(get_args(EventType))
TRANSIT_MODES: frozenset[str] = frozenset(get_args(TransitMode))
# Event types that get a commute block synthesized in front of them.
COMMUTE_SERVED_TYPES: frozenset[str] = frozenset({"shift", "interview"})


def _ensure_datetime(value: datetime | str) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _ensure_uuid(value: uuid.UUID | str | None) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError("lat must be between -90 and 90")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError("lng must be between -180 and 180")

    @classmethod
    def from_dict(cls, data: dict | None) -> "Coordinates" | None:
        if not data or data.get("lat") is None or data.get("lng") is None:
            return None
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))


@dataclass(frozen=True)
class EventLocation:
    """Where a shift or interview takes place: coordinates, an address, or both."""

    address: str | None = None
    coordinates: Coordinates | None = None

    @property
    def is_empty(self) -> bool:
        return self.coordinates is None and not (self.address and self.address.strip())


@dataclass(frozen=True)
class CommuteDetails:
    """Transit metadata carried only by ``commute`` events."""

    served_event_id: uuid.UUID | None
    transit_mode: TransitMode
    transit_time_minutes: int
    lynx_route: str | None = None
    transfers: int = 0
    walking_minutes: int = 0

    def __post_init__(self) -> None:
        if self.transit_mode not in TRANSIT_MODES:
            raise ValueError(f"transit_mode must be one of {sorted(TRANSIT_MODES)}")
        if self.transit_time_minutes <= 0:
            raise ValueError("transit_time_minutes must be positive")
        object.__setattr__(self, "served_event_id", _ensure_uuid(self.served_event_id))


@dataclass
class CalendarEvent:
    user_id: uuid.UUID
    type: EventType
    start_time: datetime
    end_time: datetime
    id: uuid.UUID | None = None
    title: str | None = None
    description: str | None = None
    job_id: uuid.UUID | None = None
    application_id: uuid.UUID | None = None
    interview_id: uuid.UUID | None = None
    location: EventLocation | None = None
    commute: CommuteDetails | None = None

    def __post_init__(self) -> None:
        if self.type not in EVENT_TYPES:
            raise ValueError(f"type must be one of {sorted(EVENT_TYPES)}")
        self.id = _ensure_uuid(self.id)
        self.user_id = _ensure_uuid(self.user_id)
        self.job_id = _ensure_uuid(self.job_id)
        self.application_id = _ensure_uuid(self.application_id)
        self.interview_id = _ensure_uuid(self.interview_id)
        self.start_time = _ensure_datetime(self.start_time)
        self.end_time = _ensure_datetime(self.end_time)
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.type == "commute" and self.commute is None:
            raise ValueError("commute events must carry commute details")
        if self.type != "commute" and self.commute is not None:
            raise ValueError("only commute events may carry commute details")

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    @property
    def is_location_bound(self) -> bool:
        return self.type in COMMUTE_SERVED_TYPES and self.location is not None and not self.location.is_empty


@dataclass(frozen=True)
class TypicalShift:
    """Weekly time slot for hypothetical projection. ``day_of_week`` 0 is Sunday."""

    day_of_week: int
    start_hour: int
    end_hour: int
    start_minute: int = 0
    end_minute: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.day_of_week <= 6:
            raise ValueError("day_of_week must be between 0 and 6")
        for name in ("start_hour", "end_hour"):
            if not 0 <= getattr(self, name) <= 23:
                raise ValueError(f"{name} must be between 0 and 23")
        for name in ("start_minute", "end_minute"):
            if not 0 <= getattr(self, name) <= 59:
                raise ValueError(f"{name} must be between 0 and 59")
        if (self.start_hour, self.start_minute) == (self.end_hour, self.end_minute):
            raise ValueError("shift must not start and end at the same time")

    @property
    def overnight(self) -> bool:
        return (self.end_hour, self.end_minute) < (self.start_hour, self.start_minute)

    def matches(self, day: date) -> bool:
        # date.weekday() counts from Monday; shift days count from Sunday
        return (day.weekday() + 1) % 7 == self.day_of_week

    def occurrence_on(self, day: date, tz: tzinfo) -> tuple[datetime, datetime]:
        start = datetime(day.year, day.month, day.day, self.start_hour, self.start_minute, tzinfo=tz)
        end_day = day + timedelta(days=1) if self.overnight else day
        end = datetime(end_day.year, end_day.month, end_day.day, self.end_hour, self.end_minute, tzinfo=tz)
        return start, end

    @classmethod
    def from_dict(cls, data: dict) -> "TypicalShift":
        return cls(
            day_of_week=int(data["day_of_week"]),
            start_hour=int(data["start_hour"]),
            start_minute=int(data.get("start_minute") or 0),
            end_hour=int(data["end_hour"]),
            end_minute=int(data.get("end_minute") or 0),
        )


@dataclass(frozen=True)
class ConflictRecord:
    existing_event: CalendarEvent
    overlap_minutes: int
    type: OverlapType
    overlap_start: datetime
    overlap_end: datetime


@dataclass(frozen=True)
class TransitEstimate:
    duration_minutes: int
    walking_minutes: int = 0
    transfers: int = 0
    distance_miles: float = 0.0
    route_summary: str = ""
    route_identifiers: tuple[str, ...] = ()
    # True when derived from distance rather than a live directions lookup
    estimated: bool = False

    def to_dict(self) -> dict:
        return {
            "duration_minutes": self.duration_minutes,
            "walking_minutes": self.walking_minutes,
            "transfers": self.transfers,
            "distance_miles": self.distance_miles,
            "route_summary": self.route_summary,
            "route_identifiers": list(self.route_identifiers),
            "estimated": self.estimated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TransitEstimate":
        return cls(
            duration_minutes=int(data["duration_minutes"]),
            walking_minutes=int(data.get("walking_minutes") or 0),
            transfers=int(data.get("transfers") or 0),
            distance_miles=float(data.get("distance_miles") or 0.0),
            route_summary=data.get("route_summary") or "",
            route_identifiers=tuple(data.get("route_identifiers") or ()),
            estimated=bool(data.get("estimated", False)),
        )


@dataclass
class PreflightResult:
    has_schedule_conflict: bool
    has_commute_conflict: bool
    conflicts: list[ConflictRecord]
    transit_info: TransitEstimate | None
    max_commute_minutes: int
    shifts: list[TypicalShift] = field(default_factory=list)
    commute_block_conflicts: list[ConflictRecord] = field(default_factory=list)

    @property
    def can_apply(self) -> bool:
        return not self.has_schedule_conflict
