"""Email queue helpers: persist outbound messages, then attempt SMTP delivery."""

from __future__ import annotations

import asyncio
import logging
import smtplib
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from email.message import EmailMessage
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models.email_queue import EmailState, QueuedEmail

logger = logging.getLogger(__name__)

__all__ = [
    "OutboundEmail",
    "deliver_queued_email",
    "queue_email",
]


@dataclass(slots=True)
class OutboundEmail:
    """A message waiting to be queued."""

    to_email: str
    subject: str
    html_body: str
    to_name: str | None = None
    text_body: str | None = None
    priority: int = 5
    metadata: dict[str, Any] | None = None


def _deliver_email(
    to_email: str, subject: str, html_body: str, text_body: str | None
) -> bool:
    """Attempt to deliver an email immediately.

    Returns True if a send was attempted (and succeeded), False if skipped due to
    missing SMTP configuration. Raises on transport errors.
    """

    settings = get_settings()
    if not settings.smtp_host or not settings.smtp_port:
        logger.info("SMTP configuration missing; leaving email to %s queued", to_email)
        return False

    message = EmailMessage()
    message["Subject"] = subject
    message["To"] = to_email
    message["From"] = (
        settings.smtp_from or settings.smtp_username or "no-reply@letably.local"
    )
    message.set_content(text_body or "This message contains HTML content.")
    message.add_alternative(html_body, subtype="html")

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=5) as server:
        if settings.smtp_username and settings.smtp_password:
            try:
                server.starttls()
            except smtplib.SMTPException:
                logger.debug("SMTP server does not support STARTTLS")
            server.login(settings.smtp_username, settings.smtp_password)
        server.send_message(message)
    return True


async def queue_email(
    session: AsyncSession,
    message: OutboundEmail,
    *,
    agency_id: uuid.UUID,
) -> uuid.UUID:
    """Persist a message in the agency's email queue and return its ID."""
    if not message.to_email:
        raise ValueError("Email recipient is required")
    queued = QueuedEmail(
        agency_id=agency_id,
        to_email=message.to_email,
        to_name=message.to_name,
        subject=message.subject,
        html_body=message.html_body,
        text_body=message.text_body,
        priority=message.priority,
        email_metadata=message.metadata,
        state=EmailState.QUEUED,
    )
    session.add(queued)
    await session.commit()
    return queued.id


async def deliver_queued_email(
    session: AsyncSession,
    *,
    agency_id: uuid.UUID,
    email_id: uuid.UUID,
) -> EmailState:
    """Try to send a queued email and record the outcome on its row."""
    result = await session.execute(
        select(QueuedEmail).where(
            QueuedEmail.id == email_id,
            QueuedEmail.agency_id == agency_id,
        )
    )
    queued = result.scalar_one_or_none()
    if queued is None:
        raise ValueError("Queued email not found")
    if queued.state is not EmailState.QUEUED:
        return queued.state

    try:
        delivered = await asyncio.to_thread(
            _deliver_email,
            queued.to_email,
            queued.subject,
            queued.html_body,
            queued.text_body,
        )
    except Exception as exc:  # pragma: no cover - network dependent
        logger.exception("Failed to send email %s to %s", queued.id, queued.to_email)
        queued.state = EmailState.FAILED
        queued.error = str(exc)
    else:
        if delivered:
            queued.state = EmailState.SENT
            queued.sent_at = datetime.now(UTC)
    await session.commit()
    return queued.state
