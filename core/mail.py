"""SendGrid provider behind the internal send-email endpoint."""

import logging
import os
import re
from dataclasses import dataclass

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

logger = logging.getLogger(__name__)

DEFAULT_FROM_EMAIL = "noreply@thekingezekielacademy.com"
DEFAULT_FROM_NAME = "King Ezekiel Academy"

TAG_PATTERN = re.compile(r"<[^>]+>")
BLANK_LINES_PATTERN = re.compile(r"\n\s*\n+")

_client: SendGridAPIClient | None = None


class MailNotConfiguredError(Exception):
    """Raised when SENDGRID_API_KEY is not set."""

    pass


class MailSendError(Exception):
    """Raised when SendGrid rejects a message."""

    pass


@dataclass
class EmailMessage:
    """Email message data."""

    to_emails: list[str]
    subject: str
    html: str
    from_email: str | None = None


def html_to_plain_text(html: str) -> str:
    """Crude plain-text fallback: strip tags and collapse blank lines."""
    text = TAG_PATTERN.sub("", html)
    return BLANK_LINES_PATTERN.sub("\n\n", text).strip()


def _get_sendgrid_client() -> SendGridAPIClient | None:
    """Get or create SendGrid client singleton."""
    global _client
    api_key = os.environ.get("SENDGRID_API_KEY")
    if _client is None and api_key:
        _client = SendGridAPIClient(api_key)
    return _client


def is_mail_configured() -> bool:
    return bool(os.environ.get("SENDGRID_API_KEY"))


def send_html_email(message: EmailMessage) -> int:
    """
    Send an HTML email via SendGrid.

    Returns:
        Provider status code

    Raises:
        MailNotConfiguredError: If no API key is configured
        MailSendError: If SendGrid does not accept the message
    """
    client = _get_sendgrid_client()
    if not client:
        raise MailNotConfiguredError("SendGrid API key not configured")

    from_email = (
        message.from_email or os.environ.get("FROM_EMAIL") or DEFAULT_FROM_EMAIL
    )
    from_name = os.environ.get("FROM_NAME", DEFAULT_FROM_NAME)

    mail = Mail(
        from_email=(from_email, from_name),
        to_emails=message.to_emails,
        subject=message.subject,
        plain_text_content=html_to_plain_text(message.html),
        html_content=message.html,
    )

    try:
        response = client.send(mail)
    except Exception as e:
        raise MailSendError(str(e)) from e

    if response.status_code not in (200, 201, 202):
        raise MailSendError(f"SendGrid returned status {response.status_code}")

    logger.info(f"Email sent to {', '.join(message.to_emails)}: {message.subject}")
    return response.status_code
