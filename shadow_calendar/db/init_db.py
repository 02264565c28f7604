from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from shadow_calendar.db.base import Base
from shadow_calendar.models.calendar_event import CalendarEvent  # noqa: F401
from shadow_calendar.models.user import User  # noqa: F401


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
