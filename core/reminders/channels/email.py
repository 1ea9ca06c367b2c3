"""Transactional email delivery channel (internal send-email endpoint)."""

import httpx


class EmailSendError(Exception):
    """Raised when the email endpoint fails to accept a message."""

    def __init__(self, to_email: str, reason: str):
        self.to_email = to_email
        self.reason = reason
        super().__init__(f"Email to {to_email} failed: {reason}")


async def send_reminder_email(
    client: httpx.AsyncClient,
    endpoint_url: str,
    to_email: str,
    subject: str,
    html: str,
) -> None:
    """
    Submit one email through the internal send-email endpoint.

    Raises:
        EmailSendError: On non-2xx responses or a "success": false payload
        httpx.HTTPError: On transport failures
    """
    response = await client.post(
        endpoint_url,
        json={"to": to_email, "subject": subject, "html": html},
    )

    try:
        data = response.json()
    except ValueError:
        data = {}

    if not response.is_success:
        raise EmailSendError(
            to_email, f"Email API error: {data.get('error') or response.status_code}"
        )
    if not data.get("success"):
        raise EmailSendError(to_email, data.get("error") or "Email API returned error")
