from __future__ import annotations

from fastapi import APIRouter

from shadow_calendar.api.v1.calendar import router as calendar_router
from shadow_calendar.api.v1.preflight import router as preflight_router
from shadow_calendar.api.v1.profile import router as profile_router
from shadow_calendar.api.v1.transit import router as transit_router

api_router = APIRouter()
api_router.include_router(calendar_router, tags=["calendar"])
api_router.include_router(preflight_router, tags=["preflight"])
api_router.include_router(transit_router, tags=["transit"])
api_router.include_router(profile_router, tags=["profile"])
