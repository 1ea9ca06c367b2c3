"""Shared fixtures for reminder engine tests.

FakeLedger stands in for class_reminders so dispatch tests can assert on
recorded rows without a database. send_log captures every outbound HTTP
call made through the mock transport.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio

from core.enums import DeliveryStatus
from core.reminders.config import DispatchConfig
from core.reminders.sessions import ClassSession

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
EMAIL_ENDPOINT = "https://academy.example/api/send-email"


class FakeLedger:
    """In-memory class_reminders with the same gate semantics."""

    def __init__(self):
        self.rows = []

    async def was_reminder_attempted(self, conn, session_id, category):
        return any(
            row.session_id == session_id and row.category is category
            for row in self.rows
        )

    async def record_delivery(self, conn, record):
        self.rows.append(record)
        return True

    def statuses(self):
        return [row.status for row in self.rows]

    def sent(self):
        return [row for row in self.rows if row.status is DeliveryStatus.sent]

    def failed(self):
        return [row for row in self.rows if row.status is DeliveryStatus.failed]


@pytest.fixture
def ledger():
    fake = FakeLedger()
    with (
        patch(
            "core.reminders.dispatcher.was_reminder_attempted",
            new=fake.was_reminder_attempted,
        ),
        patch(
            "core.reminders.broadcast.record_delivery",
            new=fake.record_delivery,
        ),
        patch(
            "core.reminders.direct.record_delivery",
            new=fake.record_delivery,
        ),
    ):
        yield fake


@pytest.fixture
def config():
    return DispatchConfig(
        telegram_bot_token="123:abc",
        app_url="https://academy.example",
        email_endpoint_url=EMAIL_ENDPOINT,
        telegram_group_ids=("-1001", "-1002", "-1003"),
        telegram_channel_id="@countdowns",
        telegram_api_base="https://api.telegram.org",
    )


@pytest.fixture
def make_session():
    def _make(starts_in: timedelta, session_id: str = "s-1", **overrides):
        fields = {
            "session_id": session_id,
            "scheduled_at": NOW + starts_in,
            "live_class_id": "lc-1",
            "course_video_id": "v-1",
            "session_type": "morning",
            "course_title": "Digital Marketing",
            "lesson_name": "Facebook Ads 101",
        }
        fields.update(overrides)
        return ClassSession(**fields)

    return _make


class SendLog:
    """Records outbound requests and answers like Telegram and the email relay."""

    def __init__(self):
        self.telegram = []
        self.email = []
        self.failing_chats = set()
        self.failing_emails = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        if str(request.url) == EMAIL_ENDPOINT:
            self.email.append(payload)
            if payload["to"] in self.failing_emails:
                return httpx.Response(500, json={"success": False, "error": "bounced"})
            return httpx.Response(200, json={"success": True})

        self.telegram.append(payload)
        if payload["chat_id"] in self.failing_chats:
            return httpx.Response(
                400, json={"ok": False, "description": "Bad Request: chat not found"}
            )
        return httpx.Response(
            200, json={"ok": True, "result": {"message_id": len(self.telegram)}}
        )


@pytest.fixture
def send_log():
    return SendLog()


@pytest_asyncio.fixture
async def http_client(send_log):
    async with httpx.AsyncClient(transport=httpx.MockTransport(send_log.handler)) as client:
        yield client


@pytest.fixture
def now():
    return NOW
