"""
Async Postgres access for the reminder service.

One pooled engine per process. A dispatch run holds a single connection for
its whole duration: the session query, every ledger read and write (each
committed on its own) and, when enabled, the session-level advisory lock.

Pooled connections outlive a run, so anything session-scoped (advisory
locks, an aborted transaction) must be cleared before the connection goes
back to the pool. reset_connection() and discard_connection() do that.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from .tables import metadata  # noqa: F401 - exported for Alembic

logger = logging.getLogger(__name__)

ASYNC_DRIVER_PREFIX = "postgresql+asyncpg://"

_engine: AsyncEngine | None = None


def to_async_url(database_url: str) -> str:
    """Convert a postgresql:// (or postgres://) URL to the asyncpg driver form."""
    for prefix in ("postgresql://", "postgres://"):
        if database_url.startswith(prefix):
            return database_url.replace(prefix, ASYNC_DRIVER_PREFIX, 1)
    return database_url


def get_engine() -> AsyncEngine:
    """
    Get or create the engine from DATABASE_URL.

    Raises:
        ValueError: If DATABASE_URL is not set
    """
    global _engine
    if _engine is None:
        database_url = os.environ.get("DATABASE_URL")
        if not database_url:
            raise ValueError("DATABASE_URL environment variable must be set")
        _engine = create_async_engine(
            to_async_url(database_url),
            echo=os.environ.get("SQL_ECHO", "").lower() == "true",
            # A run uses one connection; the HTTP trigger and the
            # in-process job may overlap, so keep a small pool
            pool_size=5,
            max_overflow=5,
            pool_timeout=30,
            pool_recycle=1800,
            pool_pre_ping=True,
        )
    return _engine


@asynccontextmanager
async def get_connection() -> AsyncGenerator[AsyncConnection, None]:
    """
    Check out a pooled connection for one dispatch run.

    If the body raises, the open transaction is rolled back before the
    connection is returned; a connection that cannot be rolled back is
    invalidated instead of being pooled.

    Usage:
        async with get_connection() as conn:
            sessions = await fetch_upcoming_sessions(conn, now, lookahead)
    """
    engine = get_engine()
    async with engine.connect() as conn:
        try:
            yield conn
        except BaseException:
            if not await reset_connection(conn):
                await discard_connection(conn)
            raise


async def reset_connection(conn: AsyncConnection) -> bool:
    """
    Roll back the current transaction, clearing an aborted state.

    Session-level state such as advisory locks survives a rollback.

    Returns:
        False if the rollback itself failed
    """
    try:
        await conn.rollback()
    except SQLAlchemyError as e:
        logger.warning(f"Rollback failed, connection unusable: {e}")
        return False
    return True


async def discard_connection(conn: AsyncConnection) -> None:
    """
    Invalidate the connection so the pool closes it instead of reusing it.

    Closing the server session drops any advisory locks it still holds.
    """
    try:
        await conn.invalidate()
    except SQLAlchemyError as e:
        logger.error(f"Failed to invalidate database connection: {e}")


async def close_engine() -> None:
    """Dispose the engine and all pooled connections. Call on shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def is_configured() -> bool:
    """Check if database credentials are configured."""
    return bool(os.environ.get("DATABASE_URL"))


def get_sync_database_url() -> str:
    """
    psycopg2 form of DATABASE_URL for Alembic, which migrates synchronously.

    Raises:
        ValueError: If DATABASE_URL is not a Postgres URL
    """
    database_url = os.environ.get("DATABASE_URL", "")
    for prefix in (ASYNC_DRIVER_PREFIX, "postgres://"):
        if database_url.startswith(prefix):
            return database_url.replace(prefix, "postgresql://", 1)
    if database_url.startswith("postgresql://"):
        return database_url
    raise ValueError("DATABASE_URL must be set to a Postgres URL for migrations")
