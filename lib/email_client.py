# =============================================================================
# lib/email_client.py - Transactional Email (Resend)
# =============================================================================
# Sends short plain-text emails through the Resend HTTP API.
#
# When RESEND_API_KEY is empty, sending is skipped (logged) and None is
# returned, so local development works without an email account.
#
# Usage:
#   from lib.email_client import send_email
#   email_id = send_email("parent@example.com", "Subject", "Body text")
# =============================================================================

from __future__ import annotations

import logging

import httpx

from app.config import settings
from lib.utils import ApplicationError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
REQUEST_TIMEOUT_SECONDS = 15


class EmailSendError(ApplicationError):
    """
    Email could not be delivered to Resend.

    `transient` is True for network errors, timeouts, rate limits and 5xx
    responses; Celery tasks retry only those.
    """

    def __init__(self, message: str, status_code: int | None = None, transient: bool = False):
        super().__init__(
            message,
            code="EMAIL_SEND_FAILED",
            suggestion="Check RESEND_API_KEY and the sender domain in EMAIL_FROM",
            details={"status_code": status_code},
        )
        self.status_code = status_code
        self.transient = transient


def send_email(
    to: str | list[str],
    subject: str,
    text: str,
    reply_to: str | None = None,
) -> str | None:
    """
    Send a plain-text email.

    Args:
        to: Recipient address(es)
        subject: Subject line
        text: Plain-text body
        reply_to: Optional Reply-To address

    Returns:
        Resend email id, or None when email is disabled

    Raises:
        EmailSendError: If Resend rejects the request or is unreachable
    """
    recipients = [to] if isinstance(to, str) else list(to)

    if not settings.email_enabled:
        logger.info(f"Email disabled (no RESEND_API_KEY); skipping '{subject}' to {recipients}")
        return None

    payload: dict = {
        "from": settings.EMAIL_FROM,
        "to": recipients,
        "subject": subject,
        "text": text,
    }
    if reply_to:
        payload["reply_to"] = reply_to

    try:
        response = httpx.post(
            RESEND_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError as e:
        raise EmailSendError(f"Could not reach Resend: {e}", transient=True)

    if response.status_code >= 400:
        raise EmailSendError(
            f"Resend rejected email ({response.status_code}): {response.text}",
            status_code=response.status_code,
            transient=response.status_code == 429 or response.status_code >= 500,
        )

    email_id = response.json().get("id")
    logger.info(f"Sent email '{subject}' to {recipients} (id={email_id})")
    return email_id
