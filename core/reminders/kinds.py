"""
Reminder kinds - SINGLE SOURCE OF TRUTH for timing, ledger category and channel.

Each kind is measured backward from the session start. Several kinds may
share one ledger category; the dedup gate only sees the category.
"""

import enum
from datetime import timedelta

from core.enums import Channel, ReminderCategory

DEFAULT_TOLERANCE = timedelta(minutes=5)


class ReminderKind(enum.Enum):
    """Closed set of reminders sent for a class session."""

    #              key,           lead before start,     ledger category,                  channel,          label
    before_24h = ("24h_before", timedelta(hours=24), ReminderCategory.email, Channel.direct, "24 hours")
    before_2h = ("2h_before", timedelta(hours=2), ReminderCategory.email, Channel.direct, "2 hours")
    before_1h = ("1h_before", timedelta(hours=1), ReminderCategory.countdown_1hr, Channel.broadcast, "1 hour")
    before_30m = ("30m_before", timedelta(minutes=30), ReminderCategory.countdown_30min, Channel.broadcast, "30 minutes")
    before_2m = ("2m_before", timedelta(minutes=2), ReminderCategory.countdown_2min, Channel.broadcast, "2 minutes")
    start = ("start", timedelta(0), ReminderCategory.class_start, Channel.broadcast, "")

    def __init__(
        self,
        key: str,
        lead: timedelta,
        category: ReminderCategory,
        channel: Channel,
        label: str,
    ):
        self.key = key
        self.lead = lead
        self.category = category
        self.channel = channel
        self.label = label
        self.tolerance = DEFAULT_TOLERANCE

    @property
    def offset(self) -> timedelta:
        """Signed offset from session start (negative = before)."""
        return -self.lead

    @property
    def is_broadcast(self) -> bool:
        return self.channel is Channel.broadcast

    @property
    def is_direct(self) -> bool:
        return self.channel is Channel.direct

    @classmethod
    def from_key(cls, key: str) -> "ReminderKind":
        for kind in cls:
            if kind.key == key:
                return kind
        raise ValueError(f"Unknown reminder kind: {key}")


def kinds_for_category(category: ReminderCategory) -> list[ReminderKind]:
    """All kinds recorded under a ledger category (email collapses two)."""
    return [kind for kind in ReminderKind if kind.category is category]
