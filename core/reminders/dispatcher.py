"""
Reminder dispatch engine.

One run: fetch sessions in the lookahead window, then for each session and
each reminder kind whose window contains `now`, consult the dedup ledger and
fan out over the kind's channel. Sessions, kinds, destinations and recipients
are all processed sequentially.

Only the session fetch (and missing configuration, handled by the caller)
can abort a run. Everything per session/kind is wrapped so failures become
counted errors.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

import httpx
import sentry_sdk
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from core.database import discard_connection, get_connection, reset_connection

from .broadcast import dispatch_broadcast
from .config import DispatchConfig
from .direct import dispatch_direct
from .kinds import ReminderKind
from .ledger import was_reminder_attempted
from .results import DispatchResult, ReminderTally
from .sessions import ClassSession, fetch_upcoming_sessions
from .window import fires

logger = logging.getLogger(__name__)

# Key for pg_try_advisory_lock; any stable bigint unique to this job works
RUN_LOCK_KEY = 0x4C4956455245  # "LIVERE"


async def acquire_run_lock(conn: AsyncConnection) -> bool:
    """Try to take the session-level advisory lock guarding a dispatch run."""
    result = await conn.execute(select(func.pg_try_advisory_lock(RUN_LOCK_KEY)))
    return bool(result.scalar())


async def release_run_lock(conn: AsyncConnection) -> bool:
    """
    Release the run lock before the connection returns to the pool.

    The lock is session-level, so a pooled connection keeps holding it until
    it is unlocked or closed. The transaction is rolled back first because
    Postgres refuses every statement in an aborted transaction. If the lock
    cannot be released the connection is invalidated, which ends the server
    session and drops the lock with it.

    Returns:
        True if pg_advisory_unlock reported the lock released
    """
    released = False
    if await reset_connection(conn):
        try:
            result = await conn.execute(select(func.pg_advisory_unlock(RUN_LOCK_KEY)))
            released = bool(result.scalar())
        except SQLAlchemyError as e:
            logger.warning(f"Failed to release reminder run lock: {e}")

    if not released:
        logger.warning("Reminder run lock not released, discarding connection")
        await discard_connection(conn)
    return released


async def dispatch_reminder(
    conn: AsyncConnection,
    client: httpx.AsyncClient,
    session: ClassSession,
    kind: ReminderKind,
    config: DispatchConfig,
) -> ReminderTally:
    """
    Send one due reminder unless the ledger already holds its category.

    Returns:
        Tally for this (session, kind); empty if skipped by the dedup gate
    """
    if await was_reminder_attempted(conn, session.session_id, kind.category):
        logger.info(
            f"{kind.key} already recorded as {kind.category.value} "
            f"for session {session.session_id}, skipping"
        )
        return ReminderTally()

    if kind.is_broadcast:
        return await dispatch_broadcast(conn, client, session, kind, config)
    return await dispatch_direct(conn, client, session, kind, config)


async def dispatch_sessions(
    conn: AsyncConnection,
    client: httpx.AsyncClient,
    sessions: list[ClassSession],
    now: datetime,
    config: DispatchConfig,
) -> ReminderTally:
    """Run every due (session, kind) pair and accumulate the totals."""
    tally = ReminderTally()

    for session in sessions:
        for kind in ReminderKind:
            if not fires(now, session.scheduled_at, kind, config.tolerance_for(kind)):
                continue

            logger.info(f"{kind.key} due for session {session.session_id}")
            try:
                tally.add(await dispatch_reminder(conn, client, session, kind, config))
            except Exception as e:
                logger.error(
                    f"Error processing {kind.key} for session {session.session_id}: {e}"
                )
                sentry_sdk.capture_exception(e)
                tally.errors += 1
                # Leave the connection usable for the next session
                await reset_connection(conn)

    return tally


@asynccontextmanager
async def _http_client(
    client: httpx.AsyncClient | None,
    config: DispatchConfig,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=config.http_timeout) as owned:
        yield owned


async def run_reminder_dispatch(
    config: DispatchConfig,
    now: datetime | None = None,
    client: httpx.AsyncClient | None = None,
) -> DispatchResult:
    """
    Execute one reminder dispatch run.

    Args:
        config: Settings for this invocation
        now: Reference time (defaults to the current UTC time)
        client: Optional HTTP client shared by both channels

    Returns:
        DispatchResult with telegram/email/error counters

    Raises:
        SessionFetchError: If upcoming sessions cannot be loaded
    """
    if now is None:
        now = datetime.now(timezone.utc)

    async with get_connection() as conn:
        if config.run_lock and not await acquire_run_lock(conn):
            logger.warning("Another reminder run holds the lock, skipping this run")
            return DispatchResult(
                message="Reminder run already in progress",
                include_breakdown=False,
                skipped=True,
            )

        try:
            sessions = await fetch_upcoming_sessions(conn, now, config.lookahead)
            if not sessions:
                logger.info("No upcoming sessions found")
                return DispatchResult(
                    message="No upcoming sessions found",
                    include_breakdown=False,
                )

            async with _http_client(client, config) as http:
                tally = await dispatch_sessions(conn, http, sessions, now, config)
        finally:
            if config.run_lock:
                await release_run_lock(conn)

    logger.info(
        f"Reminders processed: {tally.telegram} telegram, {tally.email} email, "
        f"{tally.errors} errors across {len(sessions)} session(s)"
    )
    return DispatchResult(
        message="Reminders processed",
        tally=tally,
        sessions_checked=len(sessions),
    )
