"""Direct dispatcher - a personalised email per resolved recipient."""

import logging

import httpx
import sentry_sdk
from sqlalchemy.ext.asyncio import AsyncConnection

from core.enums import DeliveryStatus

from .channels.email import send_reminder_email
from .config import DispatchConfig
from .kinds import ReminderKind
from .ledger import DeliveryRecord, record_delivery
from .messages import build_session_context, render_email
from .recipients import get_session_recipients
from .results import ReminderTally
from .sessions import ClassSession

logger = logging.getLogger(__name__)


async def dispatch_direct(
    conn: AsyncConnection,
    client: httpx.AsyncClient,
    session: ClassSession,
    kind: ReminderKind,
    config: DispatchConfig,
) -> ReminderTally:
    """
    Email every entitled user for a session.

    Recipients without an email address are skipped and not counted as
    errors. A failure for one recipient is recorded and counted, then the
    loop moves on.
    """
    tally = ReminderTally()
    recipients = await get_session_recipients(
        conn, session.session_id, session.live_class_id
    )
    context = build_session_context(session, kind, config)

    for recipient in recipients:
        if not recipient.email:
            logger.info(f"User {recipient.user_id} has no email, skipping {kind.key}")
            continue

        try:
            subject, html_body = render_email(context, recipient)
            await send_reminder_email(
                client,
                endpoint_url=config.email_endpoint_url,
                to_email=recipient.email,
                subject=subject,
                html=html_body,
            )
        except Exception as e:
            logger.error(f"Error sending {kind.key} email to {recipient.email}: {e}")
            sentry_sdk.capture_exception(e)
            tally.errors += 1
            await record_delivery(
                conn,
                DeliveryRecord(
                    session_id=session.session_id,
                    category=kind.category,
                    status=DeliveryStatus.failed,
                    recipient_email=recipient.email,
                    error_message=str(e),
                ),
            )
            continue

        logger.info(f"Email reminder {kind.key} sent to {recipient.email}")
        tally.email += 1
        await record_delivery(
            conn,
            DeliveryRecord(
                session_id=session.session_id,
                category=kind.category,
                status=DeliveryStatus.sent,
                recipient_email=recipient.email,
            ),
        )

    return tally
