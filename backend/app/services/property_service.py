"""Bedroom and property existence checks scoped to an agency."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.property import Bedroom, Property


async def get_bedroom(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    bedroom_id: uuid.UUID,
    property_id: uuid.UUID | None = None,
    lock: bool = False,
) -> Bedroom | None:
    """Return a bedroom of the agency, optionally constrained to a property.

    With ``lock`` the bedroom row is held ``FOR UPDATE`` until the surrounding
    transaction ends, which serializes reservations of the same bedroom.
    """
    stmt = select(Bedroom).where(
        Bedroom.id == bedroom_id,
        Bedroom.agency_id == agency_id,
    )
    if property_id is not None:
        stmt = stmt.where(Bedroom.property_id == property_id)
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_property(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    property_id: uuid.UUID,
) -> Property | None:
    result = await session.execute(
        select(Property).where(
            Property.id == property_id,
            Property.agency_id == agency_id,
        )
    )
    return result.scalar_one_or_none()
