"""Tests for broadcast and direct fan-out."""

from dataclasses import replace
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from core.enums import DeliveryStatus, ReminderCategory
from core.reminders.broadcast import dispatch_broadcast
from core.reminders.direct import dispatch_direct
from core.reminders.kinds import ReminderKind
from core.reminders.recipients import Recipient


class TestDispatchBroadcast:
    @pytest.mark.asyncio
    async def test_class_start_goes_to_every_group(
        self, ledger, config, make_session, send_log, http_client
    ):
        session = make_session(timedelta(0))

        tally = await dispatch_broadcast(
            AsyncMock(), http_client, session, ReminderKind.start, config
        )

        assert [m["chat_id"] for m in send_log.telegram] == ["-1001", "-1002", "-1003"]
        assert tally.telegram == 3
        assert tally.errors == 0
        assert [row.recipient_telegram_id for row in ledger.sent()] == [
            "-1001",
            "-1002",
            "-1003",
        ]
        assert {row.category for row in ledger.rows} == {ReminderCategory.class_start}

    @pytest.mark.asyncio
    async def test_same_text_sent_to_every_destination(
        self, ledger, config, make_session, send_log, http_client
    ):
        session = make_session(timedelta(0))

        await dispatch_broadcast(AsyncMock(), http_client, session, ReminderKind.start, config)

        assert len({m["text"] for m in send_log.telegram}) == 1

    @pytest.mark.asyncio
    async def test_countdown_goes_to_channel_only(
        self, ledger, config, make_session, send_log, http_client
    ):
        session = make_session(timedelta(minutes=30))

        tally = await dispatch_broadcast(
            AsyncMock(), http_client, session, ReminderKind.before_30m, config
        )

        assert [m["chat_id"] for m in send_log.telegram] == ["@countdowns"]
        assert tally.telegram == 1
        assert ledger.rows[0].category is ReminderCategory.countdown_30min

    @pytest.mark.asyncio
    async def test_one_failing_group_does_not_block_the_rest(
        self, ledger, config, make_session, send_log, http_client
    ):
        send_log.failing_chats.add("-1002")
        session = make_session(timedelta(0))

        tally = await dispatch_broadcast(
            AsyncMock(), http_client, session, ReminderKind.start, config
        )

        assert len(send_log.telegram) == 3
        assert tally.telegram == 2
        assert tally.errors == 1
        assert ledger.statuses() == [
            DeliveryStatus.sent,
            DeliveryStatus.failed,
            DeliveryStatus.sent,
        ]
        failed = ledger.failed()[0]
        assert failed.recipient_telegram_id == "-1002"
        assert "chat not found" in failed.error_message

    @pytest.mark.asyncio
    async def test_no_groups_configured_sends_nothing(
        self, ledger, config, make_session, send_log, http_client
    ):
        no_groups = replace(config, telegram_group_ids=())
        session = make_session(timedelta(0))

        tally = await dispatch_broadcast(
            AsyncMock(), http_client, session, ReminderKind.start, no_groups
        )

        assert send_log.telegram == []
        assert ledger.rows == []
        assert tally.total_sent == 0
        assert tally.errors == 0


class TestDispatchDirect:
    @pytest.mark.asyncio
    async def test_recipient_without_email_is_skipped(
        self, ledger, config, make_session, send_log, http_client
    ):
        """Three recipients, one without email: two sends, both recorded."""
        recipients = [
            Recipient(user_id="u1", email="ada@example.com", display_name="Ada"),
            Recipient(user_id="u2", email=None, display_name="Bo"),
            Recipient(user_id="u3", email="cy@example.com", display_name="Cy"),
        ]
        session = make_session(timedelta(hours=24))

        with patch(
            "core.reminders.direct.get_session_recipients",
            AsyncMock(return_value=recipients),
        ):
            tally = await dispatch_direct(
                AsyncMock(), http_client, session, ReminderKind.before_24h, config
            )

        assert [m["to"] for m in send_log.email] == ["ada@example.com", "cy@example.com"]
        assert tally.email == 2
        assert tally.errors == 0
        assert [row.recipient_email for row in ledger.sent()] == [
            "ada@example.com",
            "cy@example.com",
        ]
        assert {row.category for row in ledger.rows} == {ReminderCategory.email}

    @pytest.mark.asyncio
    async def test_emails_are_personalised(
        self, ledger, config, make_session, send_log, http_client
    ):
        recipients = [
            Recipient(user_id="u1", email="ada@example.com", display_name="Ada"),
            Recipient(user_id="u2", email="bo@example.com", display_name="Bo"),
        ]
        session = make_session(timedelta(hours=2))

        with patch(
            "core.reminders.direct.get_session_recipients",
            AsyncMock(return_value=recipients),
        ):
            await dispatch_direct(
                AsyncMock(), http_client, session, ReminderKind.before_2h, config
            )

        assert "Hi Ada," in send_log.email[0]["html"]
        assert "Hi Bo," in send_log.email[1]["html"]
        assert send_log.email[0]["subject"].endswith("2 hours before")

    @pytest.mark.asyncio
    async def test_failed_recipient_is_recorded_and_loop_continues(
        self, ledger, config, make_session, send_log, http_client
    ):
        send_log.failing_emails.add("ada@example.com")
        recipients = [
            Recipient(user_id="u1", email="ada@example.com", display_name="Ada"),
            Recipient(user_id="u2", email="bo@example.com", display_name="Bo"),
        ]
        session = make_session(timedelta(hours=24))

        with patch(
            "core.reminders.direct.get_session_recipients",
            AsyncMock(return_value=recipients),
        ):
            tally = await dispatch_direct(
                AsyncMock(), http_client, session, ReminderKind.before_24h, config
            )

        assert tally.email == 1
        assert tally.errors == 1
        assert ledger.statuses() == [DeliveryStatus.failed, DeliveryStatus.sent]
        assert "bounced" in ledger.failed()[0].error_message

    @pytest.mark.asyncio
    async def test_no_recipients(self, ledger, config, make_session, send_log, http_client):
        session = make_session(timedelta(hours=24))

        with patch(
            "core.reminders.direct.get_session_recipients",
            AsyncMock(return_value=[]),
        ):
            tally = await dispatch_direct(
                AsyncMock(), http_client, session, ReminderKind.before_24h, config
            )

        assert send_log.email == []
        assert ledger.rows == []
        assert tally.total_sent == 0
