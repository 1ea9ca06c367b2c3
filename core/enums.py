"""Enum definitions shared by the database schema and the reminder engine."""

import enum


class SessionStatus(str, enum.Enum):
    scheduled = "scheduled"
    live = "live"
    completed = "completed"
    cancelled = "cancelled"


class SessionType(str, enum.Enum):
    morning = "morning"
    afternoon = "afternoon"
    evening = "evening"


class AccessType(str, enum.Enum):
    session = "session"
    full_course = "full_course"


class DeliveryStatus(str, enum.Enum):
    sent = "sent"
    failed = "failed"


class ReminderCategory(str, enum.Enum):
    """Ledger bucket a reminder is recorded under in class_reminders."""

    email = "email"
    countdown_1hr = "countdown_1hr"
    countdown_30min = "countdown_30min"
    countdown_2min = "countdown_2min"
    class_start = "class_start"


class Channel(str, enum.Enum):
    broadcast = "broadcast"  # Telegram groups/channels
    direct = "direct"  # per-recipient email
