from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from shadow_calendar.domain.value_objects.schedule import CalendarEvent, EventLocation
from shadow_calendar.ports.transit import TransitProviderError
from shadow_calendar.services.calendar.commute_synthesizer import CommuteSynthesizer
from tests.conftest import HOME, JOB_SITE, OFFICE_ADDRESS, FakeGeocoder, FakeTransitProvider, utc


def _interview(location: EventLocation | None = EventLocation(coordinates=JOB_SITE), **kwargs) -> CalendarEvent:
    return CalendarEvent(
        id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        type=kwargs.pop("type", "interview"),
        start_time=utc(2025, 3, 4, 10),
        end_time=utc(2025, 3, 4, 11),
        title=kwargs.pop("title", "Interview at Acme"),
        job_id=uuid.uuid4(),
        application_id=uuid.uuid4(),
        location=location,
        **kwargs,
    )


async def test_commute_ends_when_served_event_starts(transit):
    served = _interview()

    commute = await CommuteSynthesizer(transit).synthesize(served, HOME, "lynx")

    assert commute is not None
    assert commute.type == "commute"
    assert commute.end_time == served.start_time
    assert commute.start_time == served.start_time - timedelta(minutes=25)
    assert commute.title == "Commute to Interview at Acme"
    assert commute.description == "Route 21 - 25 min"
    assert commute.user_id == served.user_id
    assert commute.job_id == served.job_id
    assert commute.application_id == served.application_id
    details = commute.commute
    assert details.served_event_id == served.id
    assert details.transit_mode == "lynx"
    assert details.lynx_route == "Route 21"
    assert details.transit_time_minutes == 25
    assert details.walking_minutes == 6


async def test_lookup_targets_arrival_at_event_start(transit):
    served = _interview()

    await CommuteSynthesizer(transit).synthesize(served, HOME, "car")

    assert transit.calls == [{"origin": HOME, "destination": JOB_SITE, "mode": "car", "arrive_by": served.start_time}]


async def test_untitled_event_gets_generic_title(transit):
    commute = await CommuteSynthesizer(transit).synthesize(_interview(title=None), HOME)

    assert commute.title == "Commute to appointment"


async def test_only_shifts_and_interviews_get_commutes(transit):
    with pytest.raises(ValueError):
        await CommuteSynthesizer(transit).synthesize(_interview(type="block"), HOME)


async def test_missing_location_yields_nothing(transit):
    assert await CommuteSynthesizer(transit).synthesize(_interview(location=None), HOME) is None
    assert transit.calls == []


async def test_address_is_geocoded(transit, geocoder):
    served = _interview(location=EventLocation(address=OFFICE_ADDRESS))

    commute = await CommuteSynthesizer(transit, geocoder).synthesize(served, HOME)

    assert commute is not None
    assert geocoder.calls == [OFFICE_ADDRESS]
    assert transit.calls[0]["destination"] == JOB_SITE


async def test_geocoding_failure_yields_nothing(transit):
    served = _interview(location=EventLocation(address=OFFICE_ADDRESS))

    assert await CommuteSynthesizer(transit, FakeGeocoder(fail=True)).synthesize(served, HOME) is None
    assert transit.calls == []


@pytest.mark.parametrize(
    "provider",
    [
        FakeTransitProvider(None),
        FakeTransitProvider(error=TransitProviderError("timeout")),
        FakeTransitProvider(error=RuntimeError("adapter bug")),
    ],
)
async def test_provider_trouble_yields_nothing(provider):
    assert await CommuteSynthesizer(provider).synthesize(_interview(), HOME) is None


class _BrokenGeocoder:
    async def geocode(self, address: str):
        raise KeyError(0)


async def test_unexpected_geocoder_error_yields_nothing(transit):
    served = _interview(location=EventLocation(address=OFFICE_ADDRESS))
    synthesizer = CommuteSynthesizer(transit, _BrokenGeocoder())

    assert await synthesizer.resolve_location(served.location) is None
    assert await synthesizer.synthesize(served, HOME) is None
    assert transit.calls == []
