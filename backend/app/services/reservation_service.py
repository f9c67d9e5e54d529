"""Bedroom reservations derived from held holding deposits."""
from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.holding_deposit import HoldingDeposit, HoldingDepositStatus

logger = logging.getLogger(__name__)


def _coerce_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _active_reservation_filters(agency_id: uuid.UUID):
    return (
        HoldingDeposit.agency_id == agency_id,
        HoldingDeposit.status == HoldingDepositStatus.HELD,
        HoldingDeposit.reservation_released.is_(False),
        HoldingDeposit.reservation_expires_at.is_not(None),
    )


async def get_active_reservation_for_bedroom(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    bedroom_id: uuid.UUID,
    now: datetime | None = None,
) -> HoldingDeposit | None:
    """Return the held deposit currently reserving a bedroom, if any.

    Only ``held`` deposits count; refunded or forfeited deposits never reserve
    a bedroom whatever their stored expiry. The application is loaded so the
    caller can name the applicant.
    """
    moment = _coerce_utc(now or datetime.now(UTC))
    stmt = (
        select(HoldingDeposit)
        .options(selectinload(HoldingDeposit.application))
        .where(
            HoldingDeposit.bedroom_id == bedroom_id,
            *_active_reservation_filters(agency_id),
            HoldingDeposit.reservation_expires_at > moment,
        )
        .order_by(HoldingDeposit.reservation_expires_at.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def release_expired_reservations(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    now: datetime | None = None,
) -> int:
    """Flag lapsed reservations of the agency as released; return how many."""
    moment = _coerce_utc(now or datetime.now(UTC))
    stmt = (
        update(HoldingDeposit)
        .where(
            *_active_reservation_filters(agency_id),
            HoldingDeposit.reservation_expires_at <= moment,
        )
        .values(reservation_released=True, updated_at=moment)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    released = result.rowcount or 0
    if released:
        logger.info("Released %s expired reservations for agency %s", released, agency_id)
    return released
