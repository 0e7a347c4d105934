import logging
import smtplib
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Iterable

from app.config import (
    EMAIL_FROM_ADDRESS,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """An email that should be sent once the triggering transaction has committed."""

    recipient: str
    subject: str
    body: str


def send_email(recipient: str, subject: str, body: str) -> None:
    """Send a plain text email over SMTP."""
    if not SMTP_HOST:
        logger.info(f"SMTP not configured, skipping email '{subject}' to {recipient}")
        return

    message = MIMEText(body, "plain", "utf-8")
    message["Subject"] = subject
    message["From"] = EMAIL_FROM_ADDRESS
    message["To"] = recipient

    with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=10) as server:
        if SMTP_USE_TLS:
            server.starttls()
        if SMTP_USERNAME and SMTP_PASSWORD:
            server.login(SMTP_USERNAME, SMTP_PASSWORD)
        server.send_message(message)
    logger.debug(f"Sent email '{subject}' to {recipient}")


def dispatch_notifications(notifications: Iterable[Notification]) -> None:
    """Deliver notifications; a failed delivery is logged and never raised."""
    for notification in notifications:
        try:
            send_email(notification.recipient, notification.subject, notification.body)
        except Exception:
            logger.exception(
                f"Failed to send '{notification.subject}' to {notification.recipient}"
            )
