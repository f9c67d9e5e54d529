"""Authentication service helpers."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import create_access_token, verify_password
from app.models.user import User, UserStatus
from app.services import user_service


async def authenticate_user(
    session: AsyncSession, email: str, password: str
) -> User | None:
    """Validate credentials and return a user if correct."""
    user = await user_service.get_user_by_email(session, email=email.lower())
    if user is None:
        return None
    if user.status != UserStatus.ACTIVE:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def create_access_token_for_user(user: User) -> str:
    """Generate a JWT carrying the user's agency and role."""
    return create_access_token(
        str(user.id), agency_id=str(user.agency_id), role=user.role.value
    )
