"""Initial lettings schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _agency_fk() -> sa.Column:
    return sa.Column(
        "agency_id",
        sa.Uuid(as_uuid=True),
        sa.ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "agencies",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255)),
        sa.Column("primary_color", sa.String(length=16)),
        sa.Column("logo_url", sa.String(length=512)),
        sa.Column("contact_email", sa.String(length=320)),
        sa.Column("contact_phone", sa.String(length=32)),
        sa.Column("website", sa.String(length=255)),
        sa.Column("bank_name", sa.String(length=255)),
        sa.Column("sort_code", sa.String(length=16)),
        sa.Column("account_number", sa.String(length=32)),
        *_timestamps(),
    )

    user_role_enum = sa.Enum("admin", "tenant", name="userrole")
    user_status_enum = sa.Enum("invited", "active", "suspended", name="userstatus")
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _agency_fk(),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("phone_number", sa.String(length=32)),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("status", user_status_enum, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "properties",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _agency_fk(),
        sa.Column("address_line1", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120)),
        sa.Column("postcode", sa.String(length=16)),
        *_timestamps(),
    )

    op.create_table(
        "bedrooms",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _agency_fk(),
        sa.Column(
            "property_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("properties.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("bedroom_name", sa.String(length=120), nullable=False),
        *_timestamps(),
    )

    application_type_enum = sa.Enum(
        "student", "professional", name="applicationtype"
    )
    application_status_enum = sa.Enum(
        "pending",
        "awaiting_guarantor",
        "submitted",
        "approved",
        "converted_to_tenancy",
        name="applicationstatus",
    )
    op.create_table(
        "applications",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _agency_fk(),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("application_type", application_type_enum, nullable=False),
        sa.Column("status", application_status_enum, nullable=False),
        sa.Column("first_name", sa.String(length=120)),
        sa.Column("surname", sa.String(length=120)),
        *_timestamps(),
    )

    deposit_status_enum = sa.Enum(
        "held", "refunded", "forfeited", name="holdingdepositstatus"
    )
    op.create_table(
        "holding_deposits",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _agency_fk(),
        sa.Column(
            "application_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_reference", sa.String(length=100)),
        sa.Column("date_received", sa.Date(), nullable=False),
        sa.Column(
            "bedroom_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bedrooms.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "property_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("properties.id", ondelete="SET NULL"),
        ),
        sa.Column("reservation_days", sa.Integer()),
        sa.Column("reservation_expires_at", sa.DateTime(timezone=True)),
        sa.Column(
            "reservation_released",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("status", deposit_status_enum, nullable=False),
        sa.Column("status_changed_at", sa.DateTime(timezone=True)),
        sa.Column(
            "status_changed_by",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index(
        "ix_holding_deposits_agency_id", "holding_deposits", ["agency_id"]
    )
    op.create_index(
        "ix_holding_deposits_application_id", "holding_deposits", ["application_id"]
    )
    op.create_index(
        "ix_holding_deposits_bedroom_id", "holding_deposits", ["bedroom_id"]
    )
    op.create_index("ix_holding_deposits_status", "holding_deposits", ["status"])
    op.create_index(
        "ux_holding_deposits_active_application",
        "holding_deposits",
        ["application_id"],
        unique=True,
        sqlite_where=sa.text("status = 'held'"),
        postgresql_where=sa.text("status = 'held'"),
    )

    email_state_enum = sa.Enum("queued", "sent", "failed", name="emailstate")
    op.create_table(
        "email_queue",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _agency_fk(),
        sa.Column("to_email", sa.String(length=320), nullable=False),
        sa.Column("to_name", sa.String(length=255)),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("html_body", sa.Text(), nullable=False),
        sa.Column("text_body", sa.Text()),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("state", email_state_enum, nullable=False),
        sa.Column("error", sa.Text()),
        sa.Column("sent_at", sa.DateTime(timezone=True)),
        sa.Column("metadata", sa.JSON()),
        *_timestamps(),
        sa.CheckConstraint(
            "state in ('queued','sent','failed')", name="ck_email_state"
        ),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "agency_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("agencies.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column("description", sa.String(length=1024)),
        sa.Column("payload", sa.JSON()),
        sa.Column("ip_address", sa.String(length=64)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("email_queue")
    op.drop_index(
        "ux_holding_deposits_active_application", table_name="holding_deposits"
    )
    op.drop_index("ix_holding_deposits_status", table_name="holding_deposits")
    op.drop_index("ix_holding_deposits_bedroom_id", table_name="holding_deposits")
    op.drop_index(
        "ix_holding_deposits_application_id", table_name="holding_deposits"
    )
    op.drop_index("ix_holding_deposits_agency_id", table_name="holding_deposits")
    op.drop_table("holding_deposits")
    op.drop_table("applications")
    op.drop_table("bedrooms")
    op.drop_table("properties")
    op.drop_table("users")
    op.drop_table("agencies")

    bind = op.get_bind()
    for enum_name in (
        "emailstate",
        "holdingdepositstatus",
        "applicationstatus",
        "applicationtype",
        "userstatus",
        "userrole",
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
