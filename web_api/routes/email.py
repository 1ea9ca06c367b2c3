"""
Transactional email relay.

Endpoints:
- POST /api/send-email - Send one HTML email (used by direct reminders)
"""

import logging

from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from core.mail import (
    EmailMessage,
    MailNotConfiguredError,
    MailSendError,
    send_html_email,
)

router = APIRouter(prefix="/api", tags=["email"])

logger = logging.getLogger(__name__)


class SendEmailRequest(BaseModel):
    """Relay request body. `to` may be a single address or a list."""

    to: str | list[str] | None = None
    subject: str | None = None
    html: str | None = None
    # "from" is a keyword in Python
    sender: str | None = Field(default=None, alias="from")

    model_config = {"populate_by_name": True}


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@router.post("/send-email")
async def send_email(payload: SendEmailRequest):
    """Validate the request and hand it to SendGrid."""
    if not payload.to or not payload.subject or not payload.html:
        return _failure(400, "Missing required fields: to, subject, html")

    to_emails = payload.to if isinstance(payload.to, list) else [payload.to]
    message = EmailMessage(
        to_emails=to_emails,
        subject=payload.subject,
        html=payload.html,
        from_email=payload.sender,
    )

    try:
        status_code = await run_in_threadpool(send_html_email, message)
    except MailNotConfiguredError as e:
        logger.warning(f"Email relay not configured: {e}")
        return _failure(500, "Email provider not configured")
    except MailSendError as e:
        logger.error(f"Email relay failed for {to_emails}: {e}")
        return _failure(500, str(e))

    return {"success": True, "data": {"status_code": status_code}}
