"""Outbound delivery channels for reminders."""

from .email import EmailSendError, send_reminder_email
from .telegram import TelegramSendError, send_telegram_message

__all__ = [
    "send_telegram_message",
    "TelegramSendError",
    "send_reminder_email",
    "EmailSendError",
]
