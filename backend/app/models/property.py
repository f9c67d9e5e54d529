"""Property and bedroom models."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from app.models.agency import Agency


class Property(TimestampMixin, Base):
    """A lettable building managed by an agency."""

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    agency_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False
    )
    address_line1: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str | None] = mapped_column(String(120))
    postcode: Mapped[str | None] = mapped_column(String(16))

    agency: Mapped["Agency"] = relationship("Agency", back_populates="properties")
    bedrooms: Mapped[list["Bedroom"]] = relationship(
        "Bedroom", back_populates="property", cascade="all, delete-orphan"
    )


class Bedroom(TimestampMixin, Base):
    """An individually lettable room inside a property."""

    __tablename__ = "bedrooms"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    agency_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )
    bedroom_name: Mapped[str] = mapped_column(String(120), nullable=False)

    property: Mapped[Property] = relationship("Property", back_populates="bedrooms")
