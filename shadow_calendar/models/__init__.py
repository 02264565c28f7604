from __future__ import annotations

# Import all models so Alembic sees them via Base.metadata
from shadow_calendar.models.user import User  # noqa: F401
from shadow_calendar.models.calendar_event import CalendarEvent  # noqa: F401
