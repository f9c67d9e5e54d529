"""Authentication endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from app.api.deps import get_db_session
from app.core.config import get_settings
from app.models.user import User
from app.schemas.auth import Token
from app.services import audit_service
from app.services.auth_service import authenticate_user, create_access_token_for_user

router = APIRouter()

_settings = get_settings()

_LOGIN_LIMITS = _settings.rate_limit_login


def _parse_rate(value: str, *, fallback: tuple[int, int]) -> tuple[int, int]:
    try:
        count_str, window_str = value.split("/", 1)
        count = int(count_str.strip())
    except ValueError:
        return fallback
    window = window_str.strip().lower()
    seconds_map = {
        "second": 1,
        "seconds": 1,
        "minute": 60,
        "minutes": 60,
        "hour": 3600,
        "hours": 3600,
        "day": 86400,
        "days": 86400,
    }
    seconds = seconds_map.get(window, fallback[1])
    return count, seconds


_LOGIN_LIMIT = _parse_rate(_LOGIN_LIMITS, fallback=(10, 60))


def _rate_dependency(limit: tuple[int, int]):
    async def _dependency(request: Request, response: Response) -> None:
        if FastAPILimiter.redis is None:
            return None
        limiter = RateLimiter(times=limit[0], seconds=limit[1])
        await limiter(request, response)

    return Depends(_dependency)


_LOGIN_RATE_DEP = _rate_dependency(_LOGIN_LIMIT)


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def _event_payload_for_user(user: User) -> dict[str, str]:
    return {"user_id": str(user.id), "email": user.email}


@router.post(
    "/token",
    response_model=Token,
    summary="Obtain access token",
    dependencies=[_LOGIN_RATE_DEP],
)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> Token:
    """Validate credentials and issue a bearer token scoped to the agency."""
    user = await authenticate_user(
        session, email=form_data.username, password=form_data.password
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = await create_access_token_for_user(user)
    await audit_service.record_event(
        session,
        agency_id=user.agency_id,
        user_id=user.id,
        event_type="auth.login",
        description="Successful login",
        payload=_event_payload_for_user(user),
        ip_address=_client_ip(request),
    )
    return Token(access_token=access_token)
