from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from shadow_calendar.domain.value_objects.schedule import Coordinates, TransitEstimate, TransitMode


class TransitProviderError(Exception):
    """The transit provider could not be reached or answered with garbage."""


class GeocodingError(Exception):
    """The geocoding provider could not be reached or answered with garbage."""


class TransitProvider(Protocol):
    """Port for door-to-door travel estimates."""

    async def lookup(
        self,
        origin: Coordinates,
        destination: Coordinates,
        mode: TransitMode,
        *,
        arrive_by: datetime | None = None,
    ) -> TransitEstimate | None:
        """
        Returns:
            TransitEstimate, or None when no route exists between the points.

        Raises:
            TransitProviderError on network or protocol failure.
        """
        ...


class Geocoder(Protocol):
    """Port for resolving free-text addresses."""

    async def geocode(self, address: str) -> Coordinates | None:
        """
        Returns:
            Coordinates, or None when the address does not resolve.

        Raises:
            GeocodingError on network or protocol failure.
        """
        ...


class CacheStore(Protocol):
    """Port for the short-lived lookup caches. Values must be JSON-serializable."""

    async def get(self, key: str) -> Any | None:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...
