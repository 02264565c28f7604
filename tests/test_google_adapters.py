from __future__ import annotations

import uuid

import httpx
import pytest

from shadow_calendar.domain.value_objects.schedule import CalendarEvent, Coordinates, EventLocation
from shadow_calendar.infra.cache import InMemoryTTLCache
from shadow_calendar.infrastructure.adapters.estimated_transit import EstimatedTransitProvider, haversine_miles
from shadow_calendar.infrastructure.adapters.google_maps import (
    GoogleDirectionsTransitProvider,
    GoogleGeocoder,
    transit_cache_key,
)
from shadow_calendar.ports.transit import GeocodingError, TransitProviderError
from shadow_calendar.services.calendar.commute_synthesizer import CommuteSynthesizer
from tests.conftest import HOME, JOB_SITE, OFFICE_ADDRESS, utc

BASE_URL = "https://maps.test/maps/api"

DIRECTIONS_OK = {
    "status": "OK",
    "routes": [
        {
            "summary": "",
            "legs": [
                {
                    "duration": {"value": 2700},
                    "distance": {"value": 16093.4},
                    "steps": [
                        {"travel_mode": "WALKING", "duration": {"value": 300}},
                        {
                            "travel_mode": "TRANSIT",
                            "duration": {"value": 1200},
                            "transit_details": {"line": {"short_name": "21", "name": "Route 21 Downtown"}},
                        },
                        {
                            "travel_mode": "TRANSIT",
                            "duration": {"value": 900},
                            "transit_details": {"line": {"name": "50"}},
                        },
                        {"travel_mode": "WALKING", "duration": {"value": 120}},
                    ],
                }
            ],
        }
    ],
}


def _recording_transport(payload: dict | None = None, *, status_code: int = 200, error: Exception | None = None):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if error is not None:
            raise error
        return httpx.Response(status_code, json=payload or {})

    return httpx.MockTransport(handler), requests


def _directions(transport) -> GoogleDirectionsTransitProvider:
    return GoogleDirectionsTransitProvider(
        api_key="test-key",
        base_url=BASE_URL,
        timeout_seconds=2,
        cache=InMemoryTTLCache(ttl_seconds=3600, max_entries=100),
        transport=transport,
    )


def _geocoder(transport) -> GoogleGeocoder:
    return GoogleGeocoder(
        api_key="test-key",
        base_url=BASE_URL,
        timeout_seconds=2,
        cache=InMemoryTTLCache(ttl_seconds=3600, max_entries=100),
        transport=transport,
    )


async def test_directions_leg_is_parsed_and_cached():
    transport, requests = _recording_transport(DIRECTIONS_OK)
    provider = _directions(transport)
    arrive_by = utc(2025, 3, 4, 10)

    estimate = await provider.lookup(HOME, JOB_SITE, "lynx", arrive_by=arrive_by)
    again = await provider.lookup(HOME, JOB_SITE, "lynx", arrive_by=arrive_by)

    assert estimate.duration_minutes == 45
    assert estimate.walking_minutes == 7
    assert estimate.transfers == 1
    assert estimate.distance_miles == pytest.approx(10.0)
    assert estimate.route_summary == "Route 21 → Route 50"
    assert estimate.route_identifiers == ("21", "50")
    assert not estimate.estimated
    assert again == estimate
    assert len(requests) == 1

    params = requests[0].url.params
    assert requests[0].url.path == "/maps/api/directions/json"
    assert params["mode"] == "transit"
    assert params["transit_mode"] == "bus"
    assert params["arrival_time"] == str(int(arrive_by.timestamp()))
    assert params["key"] == "test-key"


async def test_driving_uses_route_summary():
    payload = {
        "status": "OK",
        "routes": [{"summary": "I-4 W", "legs": [{"duration": {"value": 1260}, "distance": {"value": 20000}, "steps": []}]}],
    }
    transport, requests = _recording_transport(payload)

    estimate = await _directions(transport).lookup(HOME, JOB_SITE, "car")

    assert estimate.duration_minutes == 21
    assert estimate.route_summary == "I-4 W"
    assert requests[0].url.params["mode"] == "driving"
    assert requests[0].url.params["departure_time"] == "now"


async def test_zero_results_means_no_route():
    transport, _ = _recording_transport({"status": "ZERO_RESULTS", "routes": []})

    assert await _directions(transport).lookup(HOME, JOB_SITE, "lynx") is None


@pytest.mark.parametrize(
    "transport_kwargs",
    [
        {"payload": {"status": "REQUEST_DENIED", "error_message": "bad key"}},
        {"status_code": 500},
        {"error": httpx.ConnectError("refused")},
    ],
)
async def test_directions_failures_raise_provider_error(transport_kwargs):
    transport, _ = _recording_transport(**transport_kwargs)

    with pytest.raises(TransitProviderError):
        await _directions(transport).lookup(HOME, JOB_SITE, "lynx")


def test_transit_cache_key_buckets_arrival_to_half_hours():
    a = transit_cache_key(HOME, JOB_SITE, "lynx", utc(2025, 3, 4, 10, 1))
    b = transit_cache_key(Coordinates(HOME.lat + 0.0001, HOME.lng), JOB_SITE, "lynx", utc(2025, 3, 4, 10, 29))
    c = transit_cache_key(HOME, JOB_SITE, "lynx", utc(2025, 3, 4, 10, 31))

    assert a == b
    assert a != c
    assert a != transit_cache_key(HOME, JOB_SITE, "car", utc(2025, 3, 4, 10, 1))


async def test_geocode_caches_by_normalized_address():
    payload = {"status": "OK", "results": [{"geometry": {"location": {"lat": 28.42, "lng": -81.47}}}]}
    transport, requests = _recording_transport(payload)
    geocoder = _geocoder(transport)

    first = await geocoder.geocode("  100 Office Park  Dr ")
    second = await geocoder.geocode("100 office park dr")

    assert first == second == Coordinates(28.42, -81.47)
    assert len(requests) == 1
    assert requests[0].url.params["address"] == "  100 Office Park  Dr "


async def test_geocode_not_found_is_none():
    transport, _ = _recording_transport({"status": "ZERO_RESULTS", "results": []})

    assert await _geocoder(transport).geocode("nowhere") is None


async def test_geocode_transport_failure_raises():
    transport, _ = _recording_transport(error=httpx.ConnectError("refused"))

    with pytest.raises(GeocodingError):
        await _geocoder(transport).geocode("100 Office Park Dr")


def test_haversine_one_degree_of_latitude():
    assert haversine_miles(Coordinates(28.0, -81.0), Coordinates(29.0, -81.0)) == pytest.approx(69.1, abs=0.1)


async def test_estimated_transit_adds_mode_overhead():
    provider = EstimatedTransitProvider()

    bus = await provider.lookup(HOME, HOME, "lynx")
    car = await provider.lookup(HOME, HOME, "car")
    walk = await provider.lookup(HOME, HOME, "walk")

    assert (bus.duration_minutes, bus.walking_minutes) == (10, 10)
    assert car.duration_minutes == 5
    assert walk.duration_minutes == walk.walking_minutes == 1
    assert bus.estimated and bus.route_summary == "Bus (estimated)"


async def test_estimated_bus_speed():
    origin = Coordinates(28.0, -81.0)
    destination = Coordinates(28.1, -81.0)
    miles = haversine_miles(origin, destination)

    estimate = await EstimatedTransitProvider().lookup(origin, destination, "lynx")

    assert estimate.duration_minutes == round(miles / 12 * 60) + 10


@pytest.mark.parametrize(
    "payload",
    [
        {"status": "OK", "results": {"a": 1}},
        {"status": "OK", "results": ["x"]},
        {"status": "OK", "results": [{"geometry": {}}]},
        {"status": "OK", "results": [{"geometry": {"location": {"lat": "north", "lng": 1}}}]},
    ],
)
async def test_malformed_geocode_result_raises_geocoding_error(payload):
    transport, _ = _recording_transport(payload)

    with pytest.raises(GeocodingError):
        await _geocoder(transport).geocode("100 Office Park Dr")


@pytest.mark.parametrize(
    "payload",
    [
        {"status": "OK", "routes": {"a": 1}},
        {"status": "OK", "routes": ["x"]},
        {"status": "OK", "routes": [{"legs": ["x"]}]},
    ],
)
async def test_malformed_directions_raise_provider_error(payload):
    transport, _ = _recording_transport(payload)

    with pytest.raises(TransitProviderError):
        await _directions(transport).lookup(HOME, JOB_SITE, "lynx")


async def test_synthesizer_survives_malformed_geocode_result():
    transport, _ = _recording_transport({"status": "OK", "results": {"a": 1}})
    synthesizer = CommuteSynthesizer(EstimatedTransitProvider(), _geocoder(transport))
    served = CalendarEvent(
        user_id=uuid.uuid4(),
        type="interview",
        start_time=utc(2025, 3, 4, 10),
        end_time=utc(2025, 3, 4, 11),
        location=EventLocation(address=OFFICE_ADDRESS),
    )

    assert await synthesizer.synthesize(served, HOME) is None
