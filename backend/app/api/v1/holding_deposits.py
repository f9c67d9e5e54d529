"""Holding deposit and bedroom reservation API."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.api.deps import AgencyContext
from app.schemas.holding_deposit import (
    BankDetailsRead,
    HoldingDepositByApplication,
    HoldingDepositCreate,
    HoldingDepositMutationResponse,
    HoldingDepositRead,
    HoldingDepositStatusUpdate,
    ReleaseExpiredResponse,
    TenantHoldingDepositResponse,
)
from app.services import (
    application_service,
    branding_service,
    holding_deposit_service,
    notification_service,
    reservation_service,
)
from app.services.holding_deposit_service import (
    DepositNotFoundError,
    DepositStateConflictError,
    DepositValidationError,
    HoldingDepositError,
    ReservationConflictError,
)

router = APIRouter(prefix="/holding-deposits")

_ERROR_STATUS: dict[type[HoldingDepositError], int] = {
    DepositValidationError: status.HTTP_400_BAD_REQUEST,
    DepositNotFoundError: status.HTTP_404_NOT_FOUND,
    DepositStateConflictError: status.HTTP_409_CONFLICT,
    ReservationConflictError: status.HTTP_409_CONFLICT,
}


def _http_error(exc: HoldingDepositError) -> HTTPException:
    return HTTPException(
        status_code=_ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST),
        detail=str(exc),
        headers={"X-Error-Code": exc.code},
    )


@router.post(
    "",
    response_model=HoldingDepositMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record holding deposit",
)
async def create_holding_deposit(
    payload: HoldingDepositCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    context: Annotated[AgencyContext, Depends(deps.get_admin_context)],
    background_tasks: BackgroundTasks,
) -> HoldingDepositMutationResponse:
    """Record a deposit, approve the application and reserve the bedroom."""
    try:
        deposit = await holding_deposit_service.create_deposit(
            session,
            agency_id=context.agency_id,
            user_id=context.user_id,
            application_id=payload.application_id,
            amount=payload.amount,
            date_received=payload.date_received,
            payment_reference=payload.payment_reference,
            bedroom_id=payload.bedroom_id,
            property_id=payload.property_id,
            reservation_days=payload.reservation_days,
        )
    except HoldingDepositError as exc:
        raise _http_error(exc) from exc
    notification_service.notify_application_approved(
        background_tasks,
        agency_id=context.agency_id,
        application_id=deposit.application_id,
    )
    return HoldingDepositMutationResponse(
        deposit=HoldingDepositRead.model_validate(deposit),
        message="Holding deposit recorded and application approved",
    )


@router.get(
    "", response_model=list[HoldingDepositRead], summary="List holding deposits"
)
async def list_holding_deposits(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    context: Annotated[AgencyContext, Depends(deps.get_admin_context)],
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[HoldingDepositRead]:
    try:
        deposits = await holding_deposit_service.list_deposits(
            session, agency_id=context.agency_id, status=status_filter
        )
    except HoldingDepositError as exc:
        raise _http_error(exc) from exc
    return [HoldingDepositRead.model_validate(obj) for obj in deposits]


@router.post(
    "/release-expired",
    response_model=ReleaseExpiredResponse,
    summary="Release lapsed bedroom reservations",
)
async def release_expired(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    context: Annotated[AgencyContext, Depends(deps.get_admin_context)],
) -> ReleaseExpiredResponse:
    released = await reservation_service.release_expired_reservations(
        session, agency_id=context.agency_id
    )
    return ReleaseExpiredResponse(released=released)


@router.get(
    "/application/{application_id}",
    response_model=HoldingDepositByApplication,
    summary="Holding deposit for an application",
)
async def get_holding_deposit_for_application(
    application_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    context: Annotated[AgencyContext, Depends(deps.get_admin_context)],
) -> HoldingDepositByApplication:
    deposit = await holding_deposit_service.get_deposit_for_application(
        session, agency_id=context.agency_id, application_id=application_id
    )
    if deposit is None:
        return HoldingDepositByApplication(deposit=None)
    return HoldingDepositByApplication(
        deposit=HoldingDepositRead.model_validate(deposit)
    )


@router.get(
    "/my-application/{application_id}",
    response_model=TenantHoldingDepositResponse,
    summary="Applicant view of their holding deposit",
)
async def get_my_holding_deposit(
    application_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    context: Annotated[AgencyContext, Depends(deps.get_agency_context)],
) -> TenantHoldingDepositResponse:
    """Return the applicant's deposit with the bank details to pay into."""
    application = await application_service.get_application(
        session, agency_id=context.agency_id, application_id=application_id
    )
    if application is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Application not found",
            headers={"X-Error-Code": DepositNotFoundError.code},
        )
    if application.user_id != context.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to access this deposit",
        )
    deposit = await holding_deposit_service.get_deposit_for_application(
        session, agency_id=context.agency_id, application_id=application_id
    )
    bank_details = await branding_service.get_bank_details(
        session, agency_id=context.agency_id
    )
    return TenantHoldingDepositResponse(
        deposit=HoldingDepositRead.model_validate(deposit) if deposit else None,
        bank_details=BankDetailsRead.model_validate(bank_details),
    )


@router.get(
    "/{deposit_id}", response_model=HoldingDepositRead, summary="Get holding deposit"
)
async def get_holding_deposit(
    deposit_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    context: Annotated[AgencyContext, Depends(deps.get_admin_context)],
) -> HoldingDepositRead:
    deposit = await holding_deposit_service.get_deposit(
        session, agency_id=context.agency_id, deposit_id=deposit_id
    )
    if deposit is None:
        raise _http_error(DepositNotFoundError("Holding deposit not found"))
    return HoldingDepositRead.model_validate(deposit)


@router.patch(
    "/{deposit_id}/status",
    response_model=HoldingDepositMutationResponse,
    summary="Refund or forfeit a holding deposit",
)
async def update_holding_deposit_status(
    deposit_id: uuid.UUID,
    payload: HoldingDepositStatusUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    context: Annotated[AgencyContext, Depends(deps.get_admin_context)],
) -> HoldingDepositMutationResponse:
    try:
        deposit = await holding_deposit_service.update_status(
            session,
            agency_id=context.agency_id,
            user_id=context.user_id,
            deposit_id=deposit_id,
            status=payload.status,
            notes=payload.notes,
        )
    except HoldingDepositError as exc:
        raise _http_error(exc) from exc
    return HoldingDepositMutationResponse(
        deposit=HoldingDepositRead.model_validate(deposit),
        message=f"Holding deposit {deposit.status.value} successfully",
    )
