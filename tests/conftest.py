from __future__ import annotations

import os
import tempfile
import uuid
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

# IMPORTANT:
# Set env BEFORE importing the app (settings are read at import time)
_TMP_DIR = tempfile.mkdtemp(prefix="shadow_calendar_tests_")
os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/test.db")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
# no Redis and no Google Maps in tests: rate limits are off, collaborators are faked
os.environ.pop("REDIS_URL", None)
os.environ.pop("GOOGLE_MAPS_API_KEY", None)
os.environ.setdefault("CACHE_BACKEND", "memory")

from shadow_calendar.domain.value_objects.schedule import Coordinates, TransitEstimate  # noqa: E402
from shadow_calendar.ports.transit import GeocodingError  # noqa: E402


class FakeTransitProvider:
    """Returns ``estimate`` for every lookup, or raises ``error``."""

    def __init__(self, estimate: TransitEstimate | None = None, *, error: Exception | None = None):
        self.estimate = estimate
        self.error = error
        self.calls: list[dict] = []

    async def lookup(self, origin, destination, mode, *, arrive_by=None):
        self.calls.append({"origin": origin, "destination": destination, "mode": mode, "arrive_by": arrive_by})
        if self.error is not None:
            raise self.error
        return self.estimate


class FakeGeocoder:
    def __init__(self, known: dict[str, Coordinates] | None = None, *, fail: bool = False):
        self.known = known or {}
        self.fail = fail
        self.calls: list[str] = []

    async def geocode(self, address: str):
        self.calls.append(address)
        if self.fail:
            raise GeocodingError("geocoder unavailable")
        return self.known.get(" ".join(address.lower().split()))


HOME = Coordinates(lat=28.5383, lng=-81.3792)
JOB_SITE = Coordinates(lat=28.4245, lng=-81.4690)
OFFICE_ADDRESS = "100 Office Park Dr, Orlando"


def parse_dt(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def any_tz() -> str:
    return "UTC"


def _headers(*, tz: str, rid: str | None = None) -> dict[str, str]:
    h = {"X-Timezone": tz}
    if rid is not None:
        h["X-Request-Id"] = rid
    return h


@pytest.fixture(scope="session")
def make_headers(any_tz):
    def _mk(rid: str | None = None, tz: str | None = None) -> dict[str, str]:
        return _headers(tz=tz or any_tz, rid=rid or str(uuid.uuid4()))
    return _mk


@pytest.fixture(scope="session")
def app():
    from shadow_calendar.main import app as fastapi_app
    return fastapi_app


@pytest.fixture()
def transit() -> FakeTransitProvider:
    return FakeTransitProvider(
        TransitEstimate(
            duration_minutes=25,
            walking_minutes=6,
            transfers=0,
            distance_miles=7.4,
            route_summary="Route 21",
            route_identifiers=("21",),
        )
    )


@pytest.fixture()
def geocoder() -> FakeGeocoder:
    return FakeGeocoder({" ".join(OFFICE_ADDRESS.lower().split()): JOB_SITE})


@pytest.fixture()
async def client(app, transit, geocoder):
    from shadow_calendar.db.init_db import init_db
    from shadow_calendar.db.session import engine
    from shadow_calendar.infrastructure.di import get_geocoder, get_transit_provider

    # ASGITransport does not run the lifespan
    await init_db(engine)
    app.dependency_overrides[get_transit_provider] = lambda: transit
    app.dependency_overrides[get_geocoder] = lambda: geocoder

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(client):
    from shadow_calendar.db.session import async_session_maker
    from shadow_calendar.models.user import User
    from shadow_calendar.repositories import user_repo

    async def _mk(**profile):
        async with async_session_maker() as db:
            user = User(email=f"u_{uuid.uuid4().hex[:10]}@test.local", full_name="Test", **profile)
            await user_repo.create(db, user)
            await db.commit()
            return user

    return _mk


@pytest.fixture(scope="session")
def events_path() -> str:
    return "/v1/calendar/events"


def auth_header(user_id: uuid.UUID, headers: dict[str, str]) -> dict[str, str]:
    from shadow_calendar.core.security import create_access_token

    h = dict(headers)
    h["Authorization"] = f"Bearer {create_access_token(user_id)}"
    return h
