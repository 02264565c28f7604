from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shadow_calendar.infrastructure.mappers.calendar_mapper import to_utc
from shadow_calendar.models.calendar_event import CalendarEvent


async def list_range(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    start: datetime,
    end: datetime,
    exclude_id: uuid.UUID | None = None,
) -> list[CalendarEvent]:
    """Live events overlapping ``[start, end)``, ordered by start."""
    q = select(CalendarEvent).where(
        CalendarEvent.user_id == user_id,
        CalendarEvent.deleted == False,  # noqa: E712
        CalendarEvent.start_time < to_utc(end),
        CalendarEvent.end_time > to_utc(start),
    )
    if exclude_id is not None:
        q = q.where(CalendarEvent.id != exclude_id)
    q = q.order_by(CalendarEvent.start_time.asc(), CalendarEvent.id.asc())
    res = await db.execute(q)
    return list(res.scalars().all())


async def get_by_id(db: AsyncSession, *, user_id: uuid.UUID, event_id: uuid.UUID) -> CalendarEvent | None:
    res = await db.execute(
        select(CalendarEvent).where(
            CalendarEvent.id == event_id,
            CalendarEvent.user_id == user_id,
            CalendarEvent.deleted == False,  # noqa: E712
        )
    )
    return res.scalar_one_or_none()


async def create(db: AsyncSession, event: CalendarEvent) -> CalendarEvent:
    db.add(event)
    await db.flush()
    return event


async def update_fields(db: AsyncSession, event: CalendarEvent, values: dict) -> CalendarEvent:
    for key, value in values.items():
        setattr(event, key, value)
    event.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return event


async def list_commutes_serving(db: AsyncSession, *, user_id: uuid.UUID, served_event_id: uuid.UUID) -> list[CalendarEvent]:
    res = await db.execute(
        select(CalendarEvent).where(
            CalendarEvent.user_id == user_id,
            CalendarEvent.served_event_id == served_event_id,
            CalendarEvent.type == "commute",
            CalendarEvent.deleted == False,  # noqa: E712
        )
    )
    return list(res.scalars().all())


async def soft_delete(db: AsyncSession, *, user_id: uuid.UUID, event_ids: list[uuid.UUID]) -> int:
    if not event_ids:
        return 0
    res = await db.execute(
        update(CalendarEvent)
        .where(CalendarEvent.user_id == user_id, CalendarEvent.id.in_(event_ids))
        .values(deleted=True, updated_at=datetime.now(timezone.utc))
    )
    return res.rowcount or 0
