"""Common API dependencies."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Annotated
from collections.abc import AsyncGenerator

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.security import decode_access_token
from app.db.session import get_session
from app.models.user import User, UserRole, UserStatus
from app.services import user_service

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_v1_prefix}/auth/token")


@dataclass(frozen=True, slots=True)
class AgencyContext:
    """Tenant identity of the caller, threaded into every service call."""

    agency_id: uuid.UUID
    user_id: uuid.UUID
    role: UserRole


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> User:
    """Authenticate request via bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError as exc:  # pragma: no cover - handled as HTTP 401
        raise credentials_exception from exc

    subject = payload.get("sub")
    agency_claim = payload.get("agency_id")
    if subject is None or agency_claim is None:
        raise credentials_exception

    try:
        user_id = uuid.UUID(subject)
        token_agency_id = uuid.UUID(agency_claim)
    except (ValueError, TypeError) as exc:
        raise credentials_exception from exc

    user = await user_service.get_user_with_agency(session, user_id)
    if user is None or user.status != UserStatus.ACTIVE:
        raise credentials_exception
    if user.agency_id != token_agency_id:
        raise credentials_exception
    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Ensure the current user is active."""
    return current_user


async def get_agency_context(
    current_user: Annotated[User, Depends(get_current_active_user)],
    agency_slug: Annotated[str | None, Header(alias="X-Agency-Slug")] = None,
) -> AgencyContext:
    """Resolve the tenant for this request from the authenticated user.

    A request addressed to another agency (``X-Agency-Slug``) is refused.
    """
    if agency_slug is not None and agency_slug != current_user.agency.slug:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Agency mismatch"
        )
    return AgencyContext(
        agency_id=current_user.agency_id,
        user_id=current_user.id,
        role=current_user.role,
    )


async def get_admin_context(
    context: Annotated[AgencyContext, Depends(get_agency_context)],
) -> AgencyContext:
    """Require an agency administrator."""
    if context.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    return context
