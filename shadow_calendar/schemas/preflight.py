from __future__ import annotations

import uuid

from pydantic import BaseModel, Field, model_validator

from shadow_calendar.domain.value_objects.schedule import PreflightResult, TransitEstimate, TransitMode, TypicalShift
from shadow_calendar.schemas.calendar import ConflictOut
from shadow_calendar.schemas.common import LocationIn


class TypicalShiftIn(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_hour: int = Field(ge=0, le=23)
    start_minute: int = Field(default=0, ge=0, le=59)
    end_hour: int = Field(ge=0, le=23)
    end_minute: int = Field(default=0, ge=0, le=59)

    @model_validator(mode="after")
    def validate_range(self) -> "TypicalShiftIn":
        if (self.start_hour, self.start_minute) == (self.end_hour, self.end_minute):
            raise ValueError("shift must not start and end at the same time")
        return self

    def to_domain(self) -> TypicalShift:
        return TypicalShift(
            day_of_week=self.day_of_week,
            start_hour=self.start_hour,
            start_minute=self.start_minute,
            end_hour=self.end_hour,
            end_minute=self.end_minute,
        )


class TypicalShiftOut(BaseModel):
    day_of_week: int
    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int

    @classmethod
    def from_domain(cls, shift: TypicalShift) -> "TypicalShiftOut":
        return cls(
            day_of_week=shift.day_of_week,
            start_hour=shift.start_hour,
            start_minute=shift.start_minute,
            end_hour=shift.end_hour,
            end_minute=shift.end_minute,
        )


class PreflightIn(BaseModel):
    job_id: uuid.UUID | None = None
    employment_type: str | None = Field(default=None, max_length=64)
    shifts: list[TypicalShiftIn] = Field(default_factory=list, max_length=21)
    job_location: LocationIn | None = None
    max_commute_minutes: int | None = Field(default=None, ge=1, le=24 * 60)
    transit_mode: TransitMode | None = None


class TransitInfoOut(BaseModel):
    duration_minutes: int
    route: str
    route_identifiers: list[str]
    transfers: int
    walking_minutes: int
    distance_miles: float
    estimated: bool

    @classmethod
    def from_domain(cls, estimate: TransitEstimate) -> "TransitInfoOut":
        return cls(
            duration_minutes=estimate.duration_minutes,
            route=estimate.route_summary,
            route_identifiers=list(estimate.route_identifiers),
            transfers=estimate.transfers,
            walking_minutes=estimate.walking_minutes,
            distance_miles=estimate.distance_miles,
            estimated=estimate.estimated,
        )


class PreflightOut(BaseModel):
    job_id: uuid.UUID | None
    can_apply: bool
    has_schedule_conflict: bool
    has_commute_conflict: bool
    conflicts: list[ConflictOut]
    commute_block_conflicts: list[ConflictOut]
    transit_info: TransitInfoOut | None
    typical_shifts: list[TypicalShiftOut]
    max_commute_minutes: int

    @classmethod
    def from_result(cls, result: PreflightResult, *, job_id: uuid.UUID | None = None) -> "PreflightOut":
        return cls(
            job_id=job_id,
            can_apply=result.can_apply,
            has_schedule_conflict=result.has_schedule_conflict,
            has_commute_conflict=result.has_commute_conflict,
            conflicts=[ConflictOut.from_record(c) for c in result.conflicts],
            commute_block_conflicts=[ConflictOut.from_record(c) for c in result.commute_block_conflicts],
            transit_info=TransitInfoOut.from_domain(result.transit_info) if result.transit_info else None,
            typical_shifts=[TypicalShiftOut.from_domain(s) for s in result.shifts],
            max_commute_minutes=result.max_commute_minutes,
        )
