"""Holding deposit workflow.

Recording a deposit approves the application in the same transaction and may
reserve a bedroom for a number of days. The checks that guard the two
invariants (one held deposit per application, one live reservation per
bedroom) run inside that transaction after the application row and the
bedroom row have been locked, so two concurrent requests for the same
application or bedroom cannot both pass them.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import get_settings
from app.models.application import ApplicationStatus
from app.models.holding_deposit import HoldingDeposit, HoldingDepositStatus
from app.services import (
    application_service,
    audit_service,
    property_service,
    reservation_service,
)

logger = logging.getLogger(__name__)

_MONEY_PLACES = Decimal("0.01")
_MAX_AMOUNT = Decimal("100000000")

_ALLOWED_STATUS_TRANSITIONS: dict[
    HoldingDepositStatus, frozenset[HoldingDepositStatus]
] = {
    HoldingDepositStatus.HELD: frozenset(
        {HoldingDepositStatus.REFUNDED, HoldingDepositStatus.FORFEITED}
    ),
    HoldingDepositStatus.REFUNDED: frozenset(),
    HoldingDepositStatus.FORFEITED: frozenset(),
}

SETTLEMENT_STATUSES: tuple[HoldingDepositStatus, ...] = (
    HoldingDepositStatus.REFUNDED,
    HoldingDepositStatus.FORFEITED,
)

_REQUIRED_FIELDS_MESSAGE = "Application ID, amount, and date received are required"
_INVALID_AMOUNT_MESSAGE = "Amount must be a valid number greater than 0"
_INVALID_DATE_MESSAGE = "Invalid date received"
_ACTIVE_DEPOSIT_MESSAGE = "This application already has an active holding deposit"
_ACTIVE_DEPOSIT_INDEX = "ux_holding_deposits_active_application"


class HoldingDepositError(ValueError):
    """Base error for the holding deposit workflow."""

    code = "holding_deposit_error"


class DepositValidationError(HoldingDepositError):
    """Malformed or missing input."""

    code = "validation_error"


class DepositNotFoundError(HoldingDepositError):
    """Application, bedroom, property or deposit absent for the agency."""

    code = "not_found"


class DepositStateConflictError(HoldingDepositError):
    """The application or deposit is in the wrong state for the request."""

    code = "state_conflict"


class ReservationConflictError(HoldingDepositError):
    """The bedroom is already reserved by another held deposit."""

    code = "reservation_conflict"

    def __init__(self, blocking: HoldingDeposit) -> None:
        applicant = blocking.applicant_name or "another applicant"
        expires_at = blocking.reservation_expires_at
        until = expires_at.date().isoformat() if expires_at else "further notice"
        super().__init__(f"Bedroom is already reserved by {applicant} until {until}")
        self.deposit_id = blocking.id
        self.applicant_name = applicant
        self.expires_at = expires_at


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_amount(value: Any) -> Decimal:
    """Parse a positive, finite money amount rounded to pennies."""
    if isinstance(value, bool):
        raise DepositValidationError(_INVALID_AMOUNT_MESSAGE)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise DepositValidationError(_INVALID_AMOUNT_MESSAGE) from None
    if not amount.is_finite() or amount <= 0:
        raise DepositValidationError(_INVALID_AMOUNT_MESSAGE)
    amount = amount.quantize(_MONEY_PLACES, rounding=ROUND_HALF_UP)
    if amount <= 0 or amount >= _MAX_AMOUNT:
        raise DepositValidationError(_INVALID_AMOUNT_MESSAGE)
    return amount


def parse_date_received(value: Any) -> date:
    """Parse an ISO date (or the date part of an ISO datetime)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise DepositValidationError(_INVALID_DATE_MESSAGE) from None


def parse_reservation_days(value: Any, *, maximum: int | None = None) -> int | None:
    """Return the reservation window length, or None when not supplied."""
    if _is_blank(value):
        return None
    limit = maximum if maximum is not None else get_settings().max_reservation_days
    message = f"Reservation days must be between 1 and {limit}"
    if isinstance(value, bool):
        raise DepositValidationError(message)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    try:
        days = int(str(value).strip())
    except ValueError:
        raise DepositValidationError(message) from None
    if not 1 <= days <= limit:
        raise DepositValidationError(message)
    return days


def compute_reservation_expiry(
    date_received: date, reservation_days: int | None
) -> datetime | None:
    """Midnight UTC of the calendar day ``reservation_days`` after receipt."""
    if not reservation_days or reservation_days <= 0:
        return None
    try:
        expires_on = date_received + timedelta(days=reservation_days)
    except OverflowError:
        raise DepositValidationError(_INVALID_DATE_MESSAGE) from None
    return datetime.combine(expires_on, time.min, tzinfo=UTC)


def _validate_status_transition(
    current: HoldingDepositStatus, target: HoldingDepositStatus
) -> None:
    allowed = _ALLOWED_STATUS_TRANSITIONS.get(current, frozenset())
    if target in allowed:
        return
    sources = sorted(
        f"'{status.value}'"
        for status, targets in _ALLOWED_STATUS_TRANSITIONS.items()
        if target in targets
    )
    raise DepositStateConflictError(
        f"Cannot change status from '{current.value}' to '{target.value}'. "
        f"Only {' or '.join(sources)} deposits can be refunded or forfeited."
    )


def _parse_target_status(value: Any) -> HoldingDepositStatus:
    try:
        target = HoldingDepositStatus(value)
    except ValueError:
        target = None
    if target not in SETTLEMENT_STATUSES:
        allowed = ", ".join(status.value for status in SETTLEMENT_STATUSES)
        raise DepositValidationError(f"Invalid status. Must be one of: {allowed}")
    return target


def _is_active_deposit_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return (
        _ACTIVE_DEPOSIT_INDEX in message
        or "holding_deposits.application_id" in message
    )


def _deposit_query(agency_id: uuid.UUID):
    return (
        select(HoldingDeposit)
        .options(
            selectinload(HoldingDeposit.application),
            selectinload(HoldingDeposit.bedroom),
            selectinload(HoldingDeposit.rental_property),
            selectinload(HoldingDeposit.changed_by),
        )
        .where(HoldingDeposit.agency_id == agency_id)
    )


async def _get_held_deposit_for_application(
    session: AsyncSession, *, agency_id: uuid.UUID, application_id: uuid.UUID
) -> HoldingDeposit | None:
    result = await session.execute(
        select(HoldingDeposit)
        .where(
            HoldingDeposit.agency_id == agency_id,
            HoldingDeposit.application_id == application_id,
            HoldingDeposit.status == HoldingDepositStatus.HELD,
        )
        .limit(1)
    )
    return result.scalars().first()


async def _validate_unit(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    bedroom_id: uuid.UUID | None,
    property_id: uuid.UUID | None,
) -> None:
    if bedroom_id is not None:
        bedroom = await property_service.get_bedroom(
            session,
            agency_id=agency_id,
            bedroom_id=bedroom_id,
            property_id=property_id,
            lock=True,
        )
        if bedroom is None:
            raise DepositNotFoundError(
                "Bedroom not found in the specified property"
                if property_id is not None
                else "Bedroom not found"
            )
    elif property_id is not None:
        rental_property = await property_service.get_property(
            session, agency_id=agency_id, property_id=property_id
        )
        if rental_property is None:
            raise DepositNotFoundError("Property not found")


async def create_deposit(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    user_id: uuid.UUID,
    application_id: uuid.UUID | None,
    amount: Any,
    date_received: Any,
    payment_reference: str | None = None,
    bedroom_id: uuid.UUID | None = None,
    property_id: uuid.UUID | None = None,
    reservation_days: Any = None,
    now: datetime | None = None,
) -> HoldingDeposit:
    """Record a held deposit and approve its application atomically."""
    if _is_blank(application_id) or _is_blank(amount) or _is_blank(date_received):
        raise DepositValidationError(_REQUIRED_FIELDS_MESSAGE)
    parsed_amount = parse_amount(amount)
    received_on = parse_date_received(date_received)
    days = parse_reservation_days(reservation_days)
    expires_at = compute_reservation_expiry(received_on, days)
    reference = payment_reference.strip() if payment_reference else None
    moment = _coerce_utc(now) if now else datetime.now(UTC)

    try:
        application = await application_service.get_application(
            session, agency_id=agency_id, application_id=application_id, lock=True
        )
        if application is None:
            raise DepositNotFoundError("Application not found")
        if application.status != ApplicationStatus.SUBMITTED:
            raise DepositStateConflictError(
                "Cannot record holding deposit for application with status "
                f"'{application.status.value}'. Only 'submitted' applications "
                "can receive holding deposits."
            )

        existing = await _get_held_deposit_for_application(
            session, agency_id=agency_id, application_id=application.id
        )
        if existing is not None:
            raise DepositStateConflictError(_ACTIVE_DEPOSIT_MESSAGE)

        await _validate_unit(
            session,
            agency_id=agency_id,
            bedroom_id=bedroom_id,
            property_id=property_id,
        )

        if bedroom_id is not None:
            blocking = await reservation_service.get_active_reservation_for_bedroom(
                session, agency_id=agency_id, bedroom_id=bedroom_id, now=moment
            )
            if blocking is not None:
                raise ReservationConflictError(blocking)

        deposit = HoldingDeposit(
            id=uuid.uuid4(),
            agency_id=agency_id,
            application_id=application.id,
            amount=parsed_amount,
            payment_reference=reference or None,
            date_received=received_on,
            bedroom_id=bedroom_id,
            property_id=property_id,
            reservation_days=days,
            reservation_expires_at=expires_at,
            status=HoldingDepositStatus.HELD,
            status_changed_at=moment,
            status_changed_by=user_id,
        )
        session.add(deposit)
        application.status = ApplicationStatus.APPROVED

        await audit_service.record_event(
            session,
            agency_id=agency_id,
            user_id=user_id,
            event_type="holding_deposit.created",
            description="Holding deposit recorded and application approved",
            payload={
                "deposit_id": str(deposit.id),
                "application_id": str(application.id),
                "amount": str(parsed_amount),
                "bedroom_id": str(bedroom_id) if bedroom_id else None,
            },
            commit=False,
        )
        created = await get_deposit(
            session, agency_id=agency_id, deposit_id=deposit.id
        )
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if _is_active_deposit_violation(exc):
            raise DepositStateConflictError(_ACTIVE_DEPOSIT_MESSAGE) from exc
        raise
    except Exception:
        await session.rollback()
        raise

    logger.info(
        "Holding deposit %s recorded for application %s (agency %s)",
        deposit.id,
        application_id,
        agency_id,
    )
    if created is None:
        raise DepositNotFoundError("Holding deposit not found")
    return created


async def update_status(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    user_id: uuid.UUID,
    deposit_id: uuid.UUID,
    status: Any,
    notes: str | None = None,
    now: datetime | None = None,
) -> HoldingDeposit:
    """Settle a held deposit as refunded or forfeited; the change is final."""
    target = _parse_target_status(status)
    moment = _coerce_utc(now) if now else datetime.now(UTC)

    try:
        result = await session.execute(
            select(HoldingDeposit)
            .where(
                HoldingDeposit.id == deposit_id,
                HoldingDeposit.agency_id == agency_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        deposit = result.scalar_one_or_none()
        if deposit is None:
            raise DepositNotFoundError("Holding deposit not found")
        previous = deposit.status
        _validate_status_transition(previous, target)

        deposit.status = target
        deposit.status_changed_at = moment
        deposit.status_changed_by = user_id
        if not _is_blank(notes):
            deposit.notes = notes

        await audit_service.record_event(
            session,
            agency_id=agency_id,
            user_id=user_id,
            event_type=f"holding_deposit.{target.value}",
            description=f"Holding deposit {target.value}",
            payload={
                "deposit_id": str(deposit.id),
                "from": previous.value,
                "to": target.value,
            },
            commit=False,
        )
        updated = await get_deposit(
            session, agency_id=agency_id, deposit_id=deposit_id
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(
        "Holding deposit %s moved from %s to %s (agency %s)",
        deposit_id,
        previous.value,
        target.value,
        agency_id,
    )
    if updated is None:
        raise DepositNotFoundError("Holding deposit not found")
    return updated


async def list_deposits(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    status: HoldingDepositStatus | str | None = None,
) -> Sequence[HoldingDeposit]:
    """Deposits of the agency, newest first, optionally filtered by status."""
    stmt = _deposit_query(agency_id)
    if not _is_blank(status):
        try:
            wanted = HoldingDepositStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in HoldingDepositStatus)
            raise DepositValidationError(
                f"Invalid status. Must be one of: {allowed}"
            ) from None
        stmt = stmt.where(HoldingDeposit.status == wanted)
    stmt = stmt.order_by(HoldingDeposit.created_at.desc())
    result = await session.execute(stmt)
    return result.scalars().unique().all()


async def get_deposit(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    deposit_id: uuid.UUID,
) -> HoldingDeposit | None:
    stmt = (
        _deposit_query(agency_id)
        .where(HoldingDeposit.id == deposit_id)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalars().unique().one_or_none()


async def get_deposit_for_application(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    application_id: uuid.UUID,
) -> HoldingDeposit | None:
    """Return the most recent deposit recorded against an application."""
    stmt = (
        _deposit_query(agency_id)
        .where(HoldingDeposit.application_id == application_id)
        .order_by(HoldingDeposit.created_at.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalars().first()
