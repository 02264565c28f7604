from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from shadow_calendar.domain.value_objects.schedule import Coordinates, EventLocation


class LocationIn(BaseModel):
    address: str | None = Field(default=None, max_length=500)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def validate_pair(self) -> "LocationIn":
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be provided together")
        if self.lat is None and not (self.address and self.address.strip()):
            raise ValueError("either an address or lat/lng is required")
        return self

    @property
    def coordinates(self) -> Coordinates | None:
        if self.lat is None or self.lng is None:
            return None
        return Coordinates(lat=self.lat, lng=self.lng)

    def to_domain(self) -> EventLocation:
        address = self.address.strip() if self.address else None
        return EventLocation(address=address or None, coordinates=self.coordinates)


class LocationOut(BaseModel):
    address: str | None = None
    lat: float | None = None
    lng: float | None = None

    @classmethod
    def from_domain(cls, location: EventLocation | None) -> "LocationOut" | None:
        if location is None or location.is_empty:
            return None
        coordinates = location.coordinates
        return cls(
            address=location.address,
            lat=coordinates.lat if coordinates else None,
            lng=coordinates.lng if coordinates else None,
        )
