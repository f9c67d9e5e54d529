"""Agency branding used to compose outbound messages."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models.agency import Agency


@dataclass(slots=True)
class Branding:
    """Presentation details for an agency."""

    display_name: str
    primary_color: str
    logo_url: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    website: str | None = None
    agency_slug: str | None = None


@dataclass(slots=True)
class BankDetails:
    bank_name: str | None = None
    sort_code: str | None = None
    account_number: str | None = None


def default_branding() -> Branding:
    settings = get_settings()
    return Branding(
        display_name=settings.default_brand_name,
        primary_color=settings.default_primary_color,
    )


def _absolute_logo_url(logo_url: str | None) -> str | None:
    if not logo_url:
        return None
    if logo_url.startswith(("http://", "https://")):
        return logo_url
    return f"{get_settings().frontend_url.rstrip('/')}/{logo_url.lstrip('/')}"


async def get_branding(session: AsyncSession, *, agency_id: uuid.UUID) -> Branding:
    """Return branding for an agency, falling back to the defaults."""
    agency = await session.get(Agency, agency_id)
    if agency is None:
        return default_branding()
    defaults = default_branding()
    return Branding(
        display_name=agency.display_name or agency.name or defaults.display_name,
        primary_color=agency.primary_color or defaults.primary_color,
        logo_url=_absolute_logo_url(agency.logo_url),
        contact_email=agency.contact_email,
        contact_phone=agency.contact_phone,
        website=agency.website,
        agency_slug=agency.slug,
    )


async def get_bank_details(
    session: AsyncSession, *, agency_id: uuid.UUID
) -> BankDetails:
    """Return the bank account tenants pay holding deposits into."""
    agency = await session.get(Agency, agency_id)
    if agency is None:
        return BankDetails()
    return BankDetails(
        bank_name=agency.bank_name or None,
        sort_code=agency.sort_code or None,
        account_number=agency.account_number or None,
    )
