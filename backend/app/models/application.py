"""Rental application model."""
from __future__ import annotations

import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover
    from app.models.holding_deposit import HoldingDeposit
    from app.models.user import User


class ApplicationStatus(str, enum.Enum):
    """Lifecycle states for a rental application."""

    PENDING = "pending"
    AWAITING_GUARANTOR = "awaiting_guarantor"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    CONVERTED_TO_TENANCY = "converted_to_tenancy"


class ApplicationType(str, enum.Enum):
    STUDENT = "student"
    PROFESSIONAL = "professional"


class Application(TimestampMixin, Base):
    """A prospective tenant's request to rent a unit."""

    __tablename__ = "applications"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    agency_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    application_type: Mapped[ApplicationType] = mapped_column(
        Enum(
            ApplicationType,
            name="applicationtype",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
        ),
        nullable=False,
        default=ApplicationType.PROFESSIONAL,
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(
            ApplicationStatus,
            name="applicationstatus",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
        ),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )
    first_name: Mapped[str | None] = mapped_column(String(120))
    surname: Mapped[str | None] = mapped_column(String(120))

    user: Mapped["User"] = relationship("User")
    holding_deposits: Mapped[list["HoldingDeposit"]] = relationship(
        "HoldingDeposit", back_populates="application"
    )

    @property
    def applicant_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.surname) if part)
