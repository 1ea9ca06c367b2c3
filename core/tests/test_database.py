"""Tests for connection handling and database URL helpers."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy.exc import OperationalError

from core.database import (
    discard_connection,
    get_connection,
    get_sync_database_url,
    reset_connection,
    to_async_url,
)


def _db_error(message):
    return OperationalError("stmt", {}, Exception(message))


@pytest.fixture
def pooled_conn():
    conn = AsyncMock()
    engine = MagicMock()
    engine.connect.return_value.__aenter__.return_value = conn
    with patch("core.database.get_engine", return_value=engine):
        yield conn


class TestResetConnection:
    @pytest.mark.asyncio
    async def test_rolls_back(self):
        conn = AsyncMock()

        assert await reset_connection(conn) is True
        conn.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_rollback_reported(self):
        conn = AsyncMock()
        conn.rollback.side_effect = _db_error("connection lost")

        assert await reset_connection(conn) is False


class TestDiscardConnection:
    @pytest.mark.asyncio
    async def test_invalidates(self):
        conn = AsyncMock()

        await discard_connection(conn)

        conn.invalidate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalidate_error_not_raised(self):
        conn = AsyncMock()
        conn.invalidate.side_effect = _db_error("already closed")

        await discard_connection(conn)


class TestGetConnection:
    @pytest.mark.asyncio
    async def test_clean_exit_leaves_transaction_alone(self, pooled_conn):
        async with get_connection() as conn:
            assert conn is pooled_conn

        pooled_conn.rollback.assert_not_awaited()
        pooled_conn.invalidate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_error_rolls_back_before_pooling(self, pooled_conn):
        with pytest.raises(RuntimeError):
            async with get_connection():
                raise RuntimeError("boom")

        pooled_conn.rollback.assert_awaited_once()
        pooled_conn.invalidate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unrecoverable_connection_discarded(self, pooled_conn):
        pooled_conn.rollback.side_effect = _db_error("connection lost")

        with pytest.raises(RuntimeError):
            async with get_connection():
                raise RuntimeError("boom")

        pooled_conn.invalidate.assert_awaited_once()


class TestDatabaseUrls:
    @pytest.mark.parametrize(
        "url",
        ["postgresql://u:p@db:5432/classes", "postgres://u:p@db:5432/classes"],
    )
    def test_async_driver_url(self, url):
        assert to_async_url(url) == "postgresql+asyncpg://u:p@db:5432/classes"

    @pytest.mark.parametrize(
        "url",
        [
            "postgresql+asyncpg://u:p@db:5432/classes",
            "postgres://u:p@db:5432/classes",
            "postgresql://u:p@db:5432/classes",
        ],
    )
    def test_sync_url_for_migrations(self, url, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", url)

        assert get_sync_database_url() == "postgresql://u:p@db:5432/classes"

    def test_sync_url_requires_postgres(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)

        with pytest.raises(ValueError, match="DATABASE_URL"):
            get_sync_database_url()
