"""
Delivery ledger - dedup gate and delivery recorder over class_reminders.

The gate is scoped to (session, ledger category) only. For broadcast kinds
that is the intended semantic. For the email category it means one recorded
row, sent or failed, keeps every other recipient from being emailed for that
session again, and the 24h and 2h reminders share the category, so a 24h
send also suppresses the 2h one.

The gate read and the recorder write are not atomic. Two overlapping runs
can both pass the gate before either records; see dispatcher.acquire_run_lock
for the opt-in guard.
"""

import logging
from dataclasses import dataclass

import sentry_sdk
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncConnection

from core.database import reset_connection
from core.enums import DeliveryStatus, ReminderCategory
from core.tables import class_reminders

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryRecord:
    """One attempted delivery. Never updated or deleted once written."""

    session_id: str
    category: ReminderCategory
    status: DeliveryStatus
    recipient_email: str | None = None
    recipient_telegram_id: str | None = None
    error_message: str | None = None


async def was_reminder_attempted(
    conn: AsyncConnection,
    session_id: str,
    category: ReminderCategory,
) -> bool:
    """
    Check whether any delivery was recorded for this session and category.

    Matches both sent and failed rows.
    """
    result = await conn.execute(
        select(class_reminders.c.id)
        .where(class_reminders.c.class_session_id == session_id)
        .where(class_reminders.c.reminder_type == category.value)
        .limit(1)
    )
    return result.first() is not None


async def record_delivery(conn: AsyncConnection, record: DeliveryRecord) -> bool:
    """
    Append a delivery record and commit it immediately.

    Committing per row keeps already-recorded deliveries if the run is cut
    short by the platform timeout.

    Returns:
        True if the row was written. Write failures are logged, not raised,
        so a ledger hiccup never aborts the rest of the batch.
    """
    try:
        await conn.execute(
            insert(class_reminders).values(
                class_session_id=record.session_id,
                reminder_type=record.category.value,
                recipient_email=record.recipient_email,
                recipient_telegram_id=record.recipient_telegram_id,
                status=record.status.value,
                error_message=record.error_message,
            )
        )
        await conn.commit()
        return True
    except Exception as e:
        logger.error(
            f"Failed to record {record.status.value} {record.category.value} "
            f"delivery for session {record.session_id}: {e}"
        )
        sentry_sdk.capture_exception(e)
        await reset_connection(conn)
        return False
