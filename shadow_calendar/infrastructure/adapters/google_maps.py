"""
Google Maps adapters for the transit and geocoding ports.

Both talk to the JSON web services over httpx. Results are cached through the
CacheStore handed in at construction, so a process-local or Redis cache can be
swapped without touching this module.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any

import httpx

from shadow_calendar.domain.value_objects.schedule import Coordinates, TransitEstimate, TransitMode
from shadow_calendar.ports.transit import CacheStore, GeocodingError, TransitProviderError
from shadow_calendar.services.observability import log_provider_request

METERS_PER_MILE = 1609.34
ARRIVAL_BUCKET_SECONDS = 30 * 60

# lynx is a bus-only network
_MODE_PARAMS: dict[str, dict[str, str]] = {
    "lynx": {"mode": "transit", "transit_mode": "bus"},
    "car": {"mode": "driving"},
    "rideshare": {"mode": "driving"},
    "walk": {"mode": "walking"},
}


def normalize_address(address: str) -> str:
    return " ".join(address.lower().split())


def transit_cache_key(
    origin: Coordinates,
    destination: Coordinates,
    mode: TransitMode,
    arrive_by: datetime | None,
) -> str:
    bucket = int(arrive_by.timestamp() // ARRIVAL_BUCKET_SECONDS) if arrive_by is not None else "now"
    return (
        f"{origin.lat:.3f},{origin.lng:.3f}:"
        f"{destination.lat:.3f},{destination.lng:.3f}:"
        f"{mode}:{bucket}"
    )


def parse_directions_leg(leg: dict[str, Any], *, mode: TransitMode, route_summary: str = "") -> TransitEstimate:
    walking_seconds = 0
    route_numbers: list[str] = []
    for step in leg.get("steps") or []:
        travel_mode = step.get("travel_mode")
        if travel_mode == "WALKING":
            walking_seconds += int((step.get("duration") or {}).get("value") or 0)
        elif travel_mode == "TRANSIT" and step.get("transit_details"):
            line = step["transit_details"].get("line") or {}
            number = line.get("short_name") or line.get("name")
            if number:
                route_numbers.append(str(number))

    if route_numbers:
        summary = " → ".join(f"Route {number}" for number in route_numbers)
    elif mode == "lynx":
        summary = "Walking only"
    else:
        summary = route_summary or mode

    duration_seconds = int((leg.get("duration") or {}).get("value") or 0)
    distance_meters = float((leg.get("distance") or {}).get("value") or 0)
    walking_minutes = round(walking_seconds / 60)
    if mode == "walk":
        walking_minutes = round(duration_seconds / 60)
    return TransitEstimate(
        duration_minutes=round(duration_seconds / 60),
        walking_minutes=walking_minutes,
        transfers=max(0, len(route_numbers) - 1),
        distance_miles=round(distance_meters / METERS_PER_MILE, 2),
        route_summary=summary,
        route_identifiers=tuple(route_numbers),
    )


class _GoogleMapsClient:
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout_seconds: float,
        cache: CacheStore,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.cache = cache
        self.transport = transport

    async def _get_json(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
            response = await client.get(f"{self.base_url}/{path}", params={**params, "key": self.api_key})
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("unexpected response payload")
        return data


class GoogleDirectionsTransitProvider(_GoogleMapsClient):
    async def lookup(
        self,
        origin: Coordinates,
        destination: Coordinates,
        mode: TransitMode,
        *,
        arrive_by: datetime | None = None,
    ) -> TransitEstimate | None:
        key = transit_cache_key(origin, destination, mode, arrive_by)
        cached = await self.cache.get(key)
        if cached is not None:
            log_provider_request(provider="google_directions", operation="lookup", status="success", cache_hit=True)
            return TransitEstimate.from_dict(cached)

        params = {
            "origin": f"{origin.lat},{origin.lng}",
            "destination": f"{destination.lat},{destination.lng}",
            **_MODE_PARAMS[mode],
        }
        if mode == "lynx" and arrive_by is not None:
            params["arrival_time"] = str(int(arrive_by.timestamp()))
        elif mode != "walk":
            params["departure_time"] = "now"

        started = time.perf_counter()
        try:
            data = await self._get_json("directions/json", params)
        except (httpx.HTTPError, ValueError) as exc:
            log_provider_request(provider="google_directions", operation="lookup", status="failed", error=str(exc))
            raise TransitProviderError(f"directions request failed: {exc}") from exc
        latency_ms = int((time.perf_counter() - started) * 1000)

        status = data.get("status")
        if status == "ZERO_RESULTS":
            log_provider_request(provider="google_directions", operation="lookup", status="no_route", latency_ms=latency_ms)
            return None
        if status != "OK":
            log_provider_request(
                provider="google_directions",
                operation="lookup",
                status="failed",
                latency_ms=latency_ms,
                error=data.get("error_message") or status,
            )
            raise TransitProviderError(f"directions status {status}")

        try:
            routes = data.get("routes") or []
            legs = (routes[0].get("legs") or []) if routes else []
            if not legs:
                return None
            estimate = parse_directions_leg(legs[0], mode=mode, route_summary=routes[0].get("summary") or "")
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as exc:
            log_provider_request(
                provider="google_directions",
                operation="lookup",
                status="failed",
                latency_ms=latency_ms,
                error="malformed route",
            )
            raise TransitProviderError("directions response without a usable route") from exc

        await self.cache.set(key, estimate.to_dict())
        log_provider_request(provider="google_directions", operation="lookup", status="success", latency_ms=latency_ms)
        return estimate


class GoogleGeocoder(_GoogleMapsClient):
    async def geocode(self, address: str) -> Coordinates | None:
        key = normalize_address(address)
        if not key:
            return None

        cached = await self.cache.get(key)
        if cached is not None:
            log_provider_request(provider="google_geocode", operation="geocode", status="success", cache_hit=True)
            return Coordinates(lat=float(cached["lat"]), lng=float(cached["lng"]))

        started = time.perf_counter()
        try:
            data = await self._get_json("geocode/json", {"address": address})
        except (httpx.HTTPError, ValueError) as exc:
            log_provider_request(provider="google_geocode", operation="geocode", status="failed", error=str(exc))
            raise GeocodingError(f"geocode request failed: {exc}") from exc
        latency_ms = int((time.perf_counter() - started) * 1000)

        status = data.get("status")
        if status == "ZERO_RESULTS":
            log_provider_request(provider="google_geocode", operation="geocode", status="not_found", latency_ms=latency_ms)
            return None
        results = data.get("results") or []
        if status != "OK" or not results:
            log_provider_request(
                provider="google_geocode",
                operation="geocode",
                status="failed",
                latency_ms=latency_ms,
                error=data.get("error_message") or status,
            )
            raise GeocodingError(f"geocode status {status}")

        try:
            location = results[0]["geometry"]["location"]
            coordinates = Coordinates(lat=float(location["lat"]), lng=float(location["lng"]))
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as exc:
            log_provider_request(
                provider="google_geocode",
                operation="geocode",
                status="failed",
                latency_ms=latency_ms,
                error="malformed result",
            )
            raise GeocodingError("geocode result without a location") from exc

        await self.cache.set(key, {"lat": coordinates.lat, "lng": coordinates.lng})
        log_provider_request(provider="google_geocode", operation="geocode", status="success", latency_ms=latency_ms)
        return coordinates
