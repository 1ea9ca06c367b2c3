"""
Broadcast dispatcher - one formatted message per Telegram destination.

Each destination is attempted and recorded on its own; one failing group
never blocks the rest.
"""

import logging

import httpx
import sentry_sdk
from sqlalchemy.ext.asyncio import AsyncConnection

from core.enums import DeliveryStatus

from .channels.telegram import send_telegram_message
from .config import DispatchConfig
from .kinds import ReminderKind
from .ledger import DeliveryRecord, record_delivery
from .messages import build_session_context, render_broadcast
from .results import ReminderTally
from .sessions import ClassSession

logger = logging.getLogger(__name__)


async def dispatch_broadcast(
    conn: AsyncConnection,
    client: httpx.AsyncClient,
    session: ClassSession,
    kind: ReminderKind,
    config: DispatchConfig,
) -> ReminderTally:
    """
    Send a broadcast reminder to every destination configured for the kind.

    Class start goes to all groups; countdowns go to the default channel.

    Returns:
        Tally with telegram successes and per-destination errors
    """
    tally = ReminderTally()
    destinations = config.broadcast_destinations(kind)
    if not destinations:
        logger.warning(
            f"No Telegram destinations configured for {kind.key}; "
            f"session {session.session_id} not broadcast"
        )
        return tally

    text = render_broadcast(kind, build_session_context(session, kind, config))

    for chat_id in destinations:
        try:
            await send_telegram_message(
                client,
                api_base=config.telegram_api_base,
                bot_token=config.telegram_bot_token,
                chat_id=chat_id,
                text=text,
            )
        except Exception as e:
            logger.error(f"Failed to send {kind.key} to Telegram {chat_id}: {e}")
            sentry_sdk.capture_exception(e)
            tally.errors += 1
            await record_delivery(
                conn,
                DeliveryRecord(
                    session_id=session.session_id,
                    category=kind.category,
                    status=DeliveryStatus.failed,
                    recipient_telegram_id=chat_id,
                    error_message=str(e),
                ),
            )
            continue

        logger.info(f"Sent {kind.key} for session {session.session_id} to {chat_id}")
        tally.telegram += 1
        await record_delivery(
            conn,
            DeliveryRecord(
                session_id=session.session_id,
                category=kind.category,
                status=DeliveryStatus.sent,
                recipient_telegram_id=chat_id,
            ),
        )

    logger.info(
        f"{kind.key} broadcast for session {session.session_id}: "
        f"{tally.telegram} succeeded, {tally.errors} failed"
    )
    return tally
