from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from shadow_calendar.domain.value_objects.schedule import TransitMode


class CommuteProfileIn(BaseModel):
    home_address: str | None = Field(default=None, max_length=500)
    home_lat: float | None = Field(default=None, ge=-90, le=90)
    home_lng: float | None = Field(default=None, ge=-180, le=180)
    transport_mode: TransitMode | None = None
    max_commute_minutes: int | None = Field(default=None, ge=1, le=24 * 60)

    @model_validator(mode="after")
    def validate_pair(self) -> "CommuteProfileIn":
        if (self.home_lat is None) != (self.home_lng is None):
            raise ValueError("home_lat and home_lng must be provided together")
        return self


class CommuteProfileOut(BaseModel):
    model_config = {"from_attributes": True}

    home_address: str | None
    home_lat: float | None
    home_lng: float | None
    transport_mode: TransitMode
    max_commute_minutes: int
    timezone: str
