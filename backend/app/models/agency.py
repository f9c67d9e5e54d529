"""Agency model representing a tenant of the back office."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin


if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from app.models.property import Property
    from app.models.user import User


class Agency(TimestampMixin, Base):
    """A lettings agency; every other row is scoped to one of these."""

    __tablename__ = "agencies"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    display_name: Mapped[str | None] = mapped_column(String(255))
    primary_color: Mapped[str | None] = mapped_column(String(16))
    logo_url: Mapped[str | None] = mapped_column(String(512))
    contact_email: Mapped[str | None] = mapped_column(String(320))
    contact_phone: Mapped[str | None] = mapped_column(String(32))
    website: Mapped[str | None] = mapped_column(String(255))

    bank_name: Mapped[str | None] = mapped_column(String(255))
    sort_code: Mapped[str | None] = mapped_column(String(16))
    account_number: Mapped[str | None] = mapped_column(String(32))

    users: Mapped[list["User"]] = relationship(
        "User", back_populates="agency", cascade="all, delete-orphan"
    )
    properties: Mapped[list["Property"]] = relationship(
        "Property", back_populates="agency", cascade="all, delete-orphan"
    )
