"""Tenant notifications sent after a deposit workflow has committed."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from fastapi import BackgroundTasks
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.db.session import get_sessionmaker
from app.models.user import User
from app.services import application_service, branding_service, email_service
from app.services.branding_service import Branding

logger = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates"
_ENV = Environment(
    loader=FileSystemLoader(_TEMPLATE_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)

_APPROVAL_TEXT = (
    "Great news! Your application has been approved. "
    "We will be in touch with next steps."
)


def build_application_approved_email(
    *, user: User, branding: Branding
) -> email_service.OutboundEmail:
    template = _ENV.get_template("application_approved_email.html")
    html_body = template.render(first_name=user.first_name, branding=branding)
    return email_service.OutboundEmail(
        to_email=user.email,
        to_name=user.full_name,
        subject=f"Your Application Has Been Approved - {branding.display_name}",
        html_body=html_body,
        text_body=_APPROVAL_TEXT,
        priority=1,
    )


async def send_application_approved_email(
    *,
    agency_id: uuid.UUID,
    application_id: uuid.UUID,
) -> None:
    """Email the applicant that their application was approved.

    Runs outside the request transaction with its own session. Failures are
    logged and dropped; the committed deposit is never affected.
    """
    try:
        sessionmaker = get_sessionmaker()
        async with sessionmaker() as session:
            application = await application_service.get_application(
                session, agency_id=agency_id, application_id=application_id
            )
            if application is None:
                logger.warning(
                    "Approval email skipped: application %s not found", application_id
                )
                return
            user = await application_service.get_user(
                session, agency_id=agency_id, user_id=application.user_id
            )
            if user is None or not user.email:
                logger.info(
                    "Approval email skipped: no contact for application %s",
                    application_id,
                )
                return
            branding = await branding_service.get_branding(session, agency_id=agency_id)
            message = build_application_approved_email(user=user, branding=branding)
            email_id = await email_service.queue_email(
                session, message, agency_id=agency_id
            )
            await email_service.deliver_queued_email(
                session, agency_id=agency_id, email_id=email_id
            )
    except Exception:
        logger.exception(
            "Failed to send approval email for application %s", application_id
        )


def notify_application_approved(
    background_tasks: BackgroundTasks,
    *,
    agency_id: uuid.UUID,
    application_id: uuid.UUID,
) -> None:
    """Hand the approval email off to run after the response is sent."""
    background_tasks.add_task(
        send_application_approved_email,
        agency_id=agency_id,
        application_id=application_id,
    )
