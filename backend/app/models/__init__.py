"""ORM models package export."""

from app.models.agency import Agency
from app.models.application import Application, ApplicationStatus, ApplicationType
from app.models.audit_event import AuditEvent
from app.models.email_queue import EmailState, QueuedEmail
from app.models.holding_deposit import HoldingDeposit, HoldingDepositStatus
from app.models.property import Bedroom, Property
from app.models.user import User, UserRole, UserStatus

__all__ = [
    "Agency",
    "Application",
    "ApplicationStatus",
    "ApplicationType",
    "AuditEvent",
    "Bedroom",
    "EmailState",
    "HoldingDeposit",
    "HoldingDepositStatus",
    "Property",
    "QueuedEmail",
    "User",
    "UserRole",
    "UserStatus",
]
