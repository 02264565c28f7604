from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from shadow_calendar.domain.value_objects.schedule import Coordinates, TransitEstimate, TransitMode

EARTH_RADIUS_MILES = 3959.0


@dataclass(frozen=True)
class ModeProfile:
    speed_mph: float
    overhead_minutes: int
    walking_minutes: int
    label: str


# average door-to-door speeds in city traffic; overhead covers walking, waiting and parking
MODE_PROFILES: dict[str, ModeProfile] = {
    "lynx": ModeProfile(speed_mph=12.0, overhead_minutes=10, walking_minutes=10, label="Bus"),
    "car": ModeProfile(speed_mph=25.0, overhead_minutes=5, walking_minutes=0, label="Drive"),
    "rideshare": ModeProfile(speed_mph=25.0, overhead_minutes=10, walking_minutes=0, label="Rideshare"),
    "walk": ModeProfile(speed_mph=3.0, overhead_minutes=0, walking_minutes=0, label="Walk"),
}


def haversine_miles(origin: Coordinates, destination: Coordinates) -> float:
    d_lat = math.radians(destination.lat - origin.lat)
    d_lng = math.radians(destination.lng - origin.lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(origin.lat)) * math.cos(math.radians(destination.lat)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class EstimatedTransitProvider:
    """Straight-line distance estimate, used when no directions API is configured."""

    async def lookup(
        self,
        origin: Coordinates,
        destination: Coordinates,
        mode: TransitMode,
        *,
        arrive_by: datetime | None = None,
    ) -> TransitEstimate | None:
        profile = MODE_PROFILES[mode]
        miles = haversine_miles(origin, destination)
        travel_minutes = round(miles / profile.speed_mph * 60)
        duration = max(1, travel_minutes + profile.overhead_minutes)
        walking = duration if mode == "walk" else profile.walking_minutes
        return TransitEstimate(
            duration_minutes=duration,
            walking_minutes=walking,
            transfers=0,
            distance_miles=round(miles, 2),
            route_summary=f"{profile.label} (estimated)",
            estimated=True,
        )
