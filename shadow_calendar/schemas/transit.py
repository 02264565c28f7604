from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from shadow_calendar.domain.value_objects.schedule import Coordinates, TransitMode
from shadow_calendar.schemas.common import LocationIn
from shadow_calendar.schemas.preflight import TransitInfoOut
from shadow_calendar.services.transit_batch import JobLocation, JobTransitResult


class TransitLookupIn(BaseModel):
    origin: LocationIn
    destination: LocationIn
    mode: TransitMode | None = None
    arrive_by: datetime | None = None


class TransitLookupOut(BaseModel):
    accessible: bool
    summary: str
    transit: TransitInfoOut | None = None


class JobLocationIn(BaseModel):
    id: str = Field(min_length=1, max_length=128)
    location_lat: float | None = Field(default=None, ge=-90, le=90)
    location_lng: float | None = Field(default=None, ge=-180, le=180)
    location_address: str | None = Field(default=None, max_length=500)

    def to_domain(self) -> JobLocation:
        coordinates = None
        if self.location_lat is not None and self.location_lng is not None:
            coordinates = Coordinates(lat=self.location_lat, lng=self.location_lng)
        return JobLocation(id=self.id, coordinates=coordinates, address=self.location_address)


class TransitJobsIn(BaseModel):
    user_location: LocationIn | None = None
    jobs: list[JobLocationIn] = Field(min_length=1)
    max_commute: int | None = Field(default=None, ge=0)
    mode: TransitMode | None = None


class JobTransitOut(BaseModel):
    id: str
    transit_minutes: int | None
    route_identifiers: list[str]
    summary: str
    walking_minutes: int
    transfers: int
    distance_miles: float
    accessible: bool
    estimated: bool

    @classmethod
    def from_domain(cls, result: JobTransitResult) -> "JobTransitOut":
        return cls(
            id=result.id,
            transit_minutes=result.transit_minutes,
            route_identifiers=result.route_identifiers,
            summary=result.summary,
            walking_minutes=result.walking_minutes,
            transfers=result.transfers,
            distance_miles=result.distance_miles,
            accessible=result.accessible,
            estimated=result.estimated,
        )


class TransitJobsOut(BaseModel):
    jobs: list[JobTransitOut]
    user_location: dict[str, float]
    total_jobs: int
    accessible_jobs: int
    filtered_by_commute: bool
