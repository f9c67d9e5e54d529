"""Pydantic schemas for holding deposits."""
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.models.holding_deposit import HoldingDepositStatus


class HoldingDepositCreate(BaseModel):
    """Payload for recording a holding deposit.

    Amount, date and reservation length are validated by the service so the
    client receives the domain error message rather than a schema error.
    """

    application_id: uuid.UUID | None = None
    amount: int | float | str | None = None
    date_received: str | None = None
    payment_reference: str | None = Field(default=None, max_length=100)
    bedroom_id: uuid.UUID | None = None
    property_id: uuid.UUID | None = None
    reservation_days: int | float | str | None = None


class HoldingDepositStatusUpdate(BaseModel):
    """Settle a held deposit."""

    status: str
    notes: str | None = None


class HoldingDepositRead(BaseModel):
    """Serialized holding deposit."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    agency_id: uuid.UUID
    application_id: uuid.UUID
    amount: Decimal
    payment_reference: str | None = None
    date_received: date
    bedroom_id: uuid.UUID | None = None
    property_id: uuid.UUID | None = None
    reservation_days: int | None = None
    reservation_expires_at: datetime | None = None
    reservation_released: bool = False
    status: HoldingDepositStatus
    status_changed_at: datetime | None = None
    status_changed_by: uuid.UUID | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    applicant_name: str | None = None
    bedroom_name: str | None = None
    property_address: str | None = None
    changed_by_name: str | None = None


class HoldingDepositMutationResponse(BaseModel):
    deposit: HoldingDepositRead
    message: str


class HoldingDepositByApplication(BaseModel):
    deposit: HoldingDepositRead | None = None


class BankDetailsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bank_name: str | None = None
    sort_code: str | None = None
    account_number: str | None = None


class TenantHoldingDepositResponse(BaseModel):
    """What an applicant sees about their own deposit."""

    deposit: HoldingDepositRead | None = None
    bank_details: BankDetailsRead


class ReleaseExpiredResponse(BaseModel):
    released: int
