from __future__ import annotations

import asyncio

from sqlalchemy import select

from app.core.config import get_settings
from app.core.security import get_password_hash
from app.db.session import get_sessionmaker
from app.models import Agency, Bedroom, Property, User, UserRole, UserStatus

EMAIL = "admin@letably.local"
PASSWORD = "admin123"
AGENCY_SLUG = "dev-lettings"


async def main() -> None:
    settings = get_settings()
    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        existing = await session.execute(select(User.id).where(User.email == EMAIL))
        if existing.first():
            print(f"User {EMAIL} already exists")
            return

        agency = Agency(
            name="Dev Lettings",
            slug=AGENCY_SLUG,
            display_name="Dev Lettings",
            contact_email="office@letably.local",
            bank_name="Dev Bank",
            sort_code="00-00-00",
            account_number="12345678",
        )
        session.add(agency)
        await session.flush()

        session.add(
            User(
                agency_id=agency.id,
                email=EMAIL,
                hashed_password=get_password_hash(PASSWORD),
                first_name="Dev",
                last_name="Admin",
                role=UserRole.ADMIN,
                status=UserStatus.ACTIVE,
            )
        )
        rental_property = Property(
            agency_id=agency.id,
            address_line1="1 Example Street",
            city="Leeds",
            postcode="LS1 1AA",
        )
        session.add(rental_property)
        await session.flush()
        session.add(
            Bedroom(
                agency_id=agency.id,
                property_id=rental_property.id,
                bedroom_name="Room 1",
            )
        )

        await session.commit()
        print(f"Created agency {AGENCY_SLUG} and admin {EMAIL} / {PASSWORD}")


if __name__ == "__main__":
    asyncio.run(main())
