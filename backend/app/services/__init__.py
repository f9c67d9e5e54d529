"""Service layer exports."""
from app.services import (
    application_service,
    audit_service,
    auth_service,
    branding_service,
    email_service,
    holding_deposit_service,
    notification_service,
    property_service,
    reservation_service,
    user_service,
)

__all__ = [
    "application_service",
    "audit_service",
    "auth_service",
    "branding_service",
    "email_service",
    "holding_deposit_service",
    "notification_service",
    "property_service",
    "reservation_service",
    "user_service",
]
