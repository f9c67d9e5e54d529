"""User data access helpers."""
from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.user import User


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    """Return a user by email address."""
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_with_agency(
    session: AsyncSession, user_id: uuid.UUID
) -> User | None:
    """Return a user by ID with the owning agency loaded."""
    result = await session.execute(
        select(User).options(selectinload(User.agency)).where(User.id == user_id)
    )
    return result.scalar_one_or_none()
