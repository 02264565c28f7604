from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shadow_calendar.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CalendarEvent(Base):
    __tablename__ = "calendar_events"
    __table_args__ = (
        Index("ix_calendar_events_user_range", "user_id", "start_time", "end_time"),
        CheckConstraint("end_time > start_time", name="ck_calendar_events_time_range"),
        CheckConstraint(
            "(type = 'commute') = (transit_mode IS NOT NULL AND transit_time_minutes IS NOT NULL)",
            name="ck_calendar_events_commute_details",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # weak references into the job-search side of the product
    job_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    application_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    interview_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    location_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    location_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    # set only on commute rows
    served_event_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("calendar_events.id"), nullable=True, index=True
    )
    transit_mode: Mapped[str | None] = mapped_column(String(16), nullable=True)
    lynx_route: Mapped[str | None] = mapped_column(String(200), nullable=True)
    transit_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    transit_transfers: Mapped[int | None] = mapped_column(Integer, nullable=True)
    transit_walking_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
