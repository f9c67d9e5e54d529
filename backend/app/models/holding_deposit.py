"""Holding deposit model for application approvals and bedroom reservations."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from app.models.application import Application
    from app.models.property import Bedroom, Property
    from app.models.user import User


class HoldingDepositStatus(str, enum.Enum):
    """Lifecycle states for a holding deposit."""

    HELD = "held"
    REFUNDED = "refunded"
    FORFEITED = "forfeited"


class HoldingDeposit(TimestampMixin, Base):
    """Money held against an application, optionally reserving a bedroom."""

    __tablename__ = "holding_deposits"
    __table_args__ = (
        Index("ix_holding_deposits_agency_id", "agency_id"),
        Index("ix_holding_deposits_application_id", "application_id"),
        Index("ix_holding_deposits_bedroom_id", "bedroom_id"),
        Index("ix_holding_deposits_status", "status"),
        Index(
            "ux_holding_deposits_active_application",
            "application_id",
            unique=True,
            sqlite_where=text("status = 'held'"),
            postgresql_where=text("status = 'held'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    agency_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False
    )
    application_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_reference: Mapped[str | None] = mapped_column(String(100))
    date_received: Mapped[date] = mapped_column(Date(), nullable=False)
    bedroom_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("bedrooms.id", ondelete="SET NULL")
    )
    property_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("properties.id", ondelete="SET NULL")
    )
    reservation_days: Mapped[int | None] = mapped_column(Integer)
    reservation_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    reservation_released: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    status: Mapped[HoldingDepositStatus] = mapped_column(
        Enum(
            HoldingDepositStatus,
            name="holdingdepositstatus",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
        ),
        nullable=False,
        default=HoldingDepositStatus.HELD,
    )
    status_changed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status_changed_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    notes: Mapped[str | None] = mapped_column(Text)

    application: Mapped["Application"] = relationship(
        "Application", back_populates="holding_deposits"
    )
    bedroom: Mapped["Bedroom | None"] = relationship("Bedroom")
    rental_property: Mapped["Property | None"] = relationship("Property")
    changed_by: Mapped["User | None"] = relationship("User")

    @property
    def applicant_name(self) -> str | None:
        if self.application is None:
            return None
        return self.application.applicant_name or None

    @property
    def bedroom_name(self) -> str | None:
        return self.bedroom.bedroom_name if self.bedroom is not None else None

    @property
    def property_address(self) -> str | None:
        if self.rental_property is None:
            return None
        return self.rental_property.address_line1

    @property
    def changed_by_name(self) -> str | None:
        return self.changed_by.full_name if self.changed_by is not None else None
