"""
Reminder message formatting.

Builds the template context for a session and renders the broadcast text
and the personalised email for each reminder kind.
"""

from html import escape

from core.enums import SessionType
from core.timezone import format_session_date, format_session_time

from .config import DispatchConfig
from .kinds import ReminderKind
from .recipients import Recipient
from .sessions import ClassSession
from .templates import get_message
from .urls import build_class_url

SESSION_GLYPHS = {
    SessionType.morning: "🌅",
    SessionType.afternoon: "☀️",
    SessionType.evening: "🌙",
}
DEFAULT_GLYPH = "📚"

DEFAULT_COURSE_TITLE = "Live Class"
DEFAULT_LESSON_NAME = "Class Session"


def session_glyph(session_type: str | None) -> str:
    return SESSION_GLYPHS.get(session_type or "", DEFAULT_GLYPH)


def session_label(session_type: str | None) -> str:
    """Capitalise the session type; sessions without one read as Live."""
    if not session_type:
        return "Live"
    return session_type[:1].upper() + session_type[1:]


def build_session_context(
    session: ClassSession,
    kind: ReminderKind,
    config: DispatchConfig,
) -> dict:
    """
    Build the raw (unescaped) template context for a session reminder.

    The class-start link includes the live class id; every other kind links
    straight to the session.
    """
    live_class_id = session.live_class_id if kind is ReminderKind.start else None
    return {
        "course_title": session.course_title or DEFAULT_COURSE_TITLE,
        "lesson_name": session.lesson_name or DEFAULT_LESSON_NAME,
        "session_glyph": session_glyph(session.session_type),
        "session_label": session_label(session.session_type),
        "session_date": format_session_date(
            session.scheduled_at, config.display_timezone
        ),
        "session_time": format_session_time(
            session.scheduled_at, config.display_timezone
        ),
        "class_url": build_class_url(config.app_url, session.session_id, live_class_id),
        "time_label": kind.label,
    }


def escape_context(context: dict) -> dict:
    """HTML-escape every value for Telegram HTML mode and email bodies."""
    return {key: escape(str(value), quote=True) for key, value in context.items()}


def render_broadcast(kind: ReminderKind, context: dict) -> str:
    """Render the Telegram text for a broadcast kind."""
    if not kind.is_broadcast:
        raise ValueError(f"{kind.key} is not a broadcast reminder")
    message_type = "class_start" if kind is ReminderKind.start else "countdown"
    return get_message(message_type, "telegram", escape_context(context))


def render_email(context: dict, recipient: Recipient) -> tuple[str, str]:
    """
    Render the personalised reminder email.

    Returns:
        (subject, html_body)
    """
    personal = {**context, "name": recipient.display_name}
    subject = get_message("email_reminder", "email_subject", personal)
    html_body = get_message("email_reminder", "email_html", escape_context(personal))
    return subject, html_body
