"""Test fixtures for the lettings back office backend."""
from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from app.core.config import get_settings
from app.core.security import get_password_hash
from app.db.base import Base
from app.db.session import dispose_engine, get_sessionmaker
from app.main import app
from app.models import (
    Agency,
    Application,
    ApplicationStatus,
    Bedroom,
    Property,
    User,
    UserRole,
    UserStatus,
)

ADMIN_PASSWORD = "Passw0rd!"
TENANT_PASSWORD = "Tenant123!"


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


async def seed_agency(
    session,
    *,
    name: str,
    admin_email: str,
    tenant_email: str,
    application_status: ApplicationStatus = ApplicationStatus.SUBMITTED,
) -> dict[str, object]:
    """Create an agency with an admin, a tenant applicant and one bedroom."""
    agency = Agency(
        name=name,
        slug=f"agency-{uuid.uuid4().hex[:8]}",
        display_name=name,
        contact_email=f"office@{uuid.uuid4().hex[:6]}.example.com",
        bank_name="Northern Bank",
        sort_code="12-34-56",
        account_number="87654321",
    )
    session.add(agency)
    await session.flush()

    admin = User(
        agency_id=agency.id,
        email=admin_email,
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        first_name="Alex",
        last_name="Admin",
        role=UserRole.ADMIN,
        status=UserStatus.ACTIVE,
    )
    tenant = User(
        agency_id=agency.id,
        email=tenant_email,
        hashed_password=get_password_hash(TENANT_PASSWORD),
        first_name="Jane",
        last_name="Doe",
        role=UserRole.TENANT,
        status=UserStatus.ACTIVE,
    )
    session.add_all([admin, tenant])
    await session.flush()

    rental_property = Property(
        agency_id=agency.id,
        address_line1="12 Hyde Park Road",
        city="Leeds",
        postcode="LS6 1AB",
    )
    session.add(rental_property)
    await session.flush()

    bedroom = Bedroom(
        agency_id=agency.id,
        property_id=rental_property.id,
        bedroom_name="Room 1",
    )
    application = Application(
        agency_id=agency.id,
        user_id=tenant.id,
        status=application_status,
        first_name="Jane",
        surname="Doe",
    )
    session.add_all([bedroom, application])
    await session.flush()

    return {
        "agency_id": agency.id,
        "agency_slug": agency.slug,
        "admin_id": admin.id,
        "admin_email": admin.email,
        "tenant_id": tenant.id,
        "tenant_email": tenant.email,
        "property_id": rental_property.id,
        "bedroom_id": bedroom.id,
        "application_id": application.id,
    }


@pytest_asyncio.fixture()
async def app_context(
    reset_database: AsyncIterator[None], db_url: str
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client and seeded agency data."""
    sessionmaker = get_sessionmaker(db_url)

    async with sessionmaker() as session:
        context = await seed_agency(
            session,
            name="Test Lettings",
            admin_email="admin@example.com",
            tenant_email="jane@example.com",
        )
        await session.commit()

    context["admin_password"] = ADMIN_PASSWORD
    context["tenant_password"] = TENANT_PASSWORD
    context["sessionmaker"] = sessionmaker

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        context["client"] = client
        yield context


@pytest_asyncio.fixture()
async def db_session(
    reset_database: AsyncIterator[None], db_url: str
) -> AsyncIterator[object]:
    """Yield a session on a freshly created schema."""
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        yield session
