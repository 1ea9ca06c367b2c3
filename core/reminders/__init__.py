"""
Live-class reminder dispatch.

Public API:
    run_reminder_dispatch(config, now) - One periodic dispatch run
    DispatchConfig.from_env() - Build the run configuration
    build_authenticator(config) - Trigger authenticator for the deployment

Building blocks:
    ReminderKind - Timing, ledger category and channel per reminder
    fires(now, start, kind) - Reminder window matcher
    was_reminder_attempted / record_delivery - Dedup ledger
    get_session_recipients - Recipient resolver for email reminders
    dispatch_broadcast / dispatch_direct - Channel fan-out
"""

from .auth import TriggerAuthError, TriggerRequest, build_authenticator, require_trigger
from .broadcast import dispatch_broadcast
from .config import ConfigurationError, DispatchConfig
from .direct import dispatch_direct
from .dispatcher import run_reminder_dispatch
from .kinds import ReminderKind
from .ledger import DeliveryRecord, record_delivery, was_reminder_attempted
from .recipients import Recipient, get_session_recipients
from .results import DispatchResult, ReminderTally
from .sessions import ClassSession, SessionFetchError, fetch_upcoming_sessions
from .window import due_kinds, fires

__all__ = [
    "run_reminder_dispatch",
    "DispatchConfig",
    "ConfigurationError",
    "build_authenticator",
    "require_trigger",
    "TriggerRequest",
    "TriggerAuthError",
    "ReminderKind",
    "fires",
    "due_kinds",
    "was_reminder_attempted",
    "record_delivery",
    "DeliveryRecord",
    "get_session_recipients",
    "Recipient",
    "dispatch_broadcast",
    "dispatch_direct",
    "fetch_upcoming_sessions",
    "ClassSession",
    "SessionFetchError",
    "DispatchResult",
    "ReminderTally",
]
