from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shadow_calendar.models.user import User


async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    res = await db.execute(select(User).where(User.id == user_id, User.deleted == False))  # noqa: E712
    return res.scalar_one_or_none()


async def create(db: AsyncSession, user: User) -> User:
    db.add(user)
    await db.flush()
    return user


async def update_profile(db: AsyncSession, user: User, values: dict) -> User:
    for key, value in values.items():
        setattr(user, key, value)
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return user
