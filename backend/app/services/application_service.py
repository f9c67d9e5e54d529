"""Application registry lookups scoped to an agency."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.application import Application
from app.models.user import User


async def get_application(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    application_id: uuid.UUID,
    lock: bool = False,
) -> Application | None:
    """Return an application of the agency, optionally locking its row."""
    stmt = select(Application).where(
        Application.id == application_id,
        Application.agency_id == agency_id,
    )
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    user_id: uuid.UUID,
) -> User | None:
    """Return a user of the agency by ID."""
    result = await session.execute(
        select(User).where(User.id == user_id, User.agency_id == agency_id)
    )
    return result.scalar_one_or_none()
