"""URL builders for reminder deep links."""


def build_class_url(app_url: str, session_id: str, live_class_id: str | None = None) -> str:
    """
    Build the deep link to a class session.

    With a live class id (class-start messages) the link goes through the
    live class page; otherwise it points straight at the session.
    """
    base = app_url.rstrip("/")
    if live_class_id:
        return f"{base}/live-classes/{live_class_id}/session/{session_id}"
    return f"{base}/live-classes/session/{session_id}"


def build_send_message_url(api_base: str, bot_token: str) -> str:
    """Build the Telegram Bot API sendMessage URL."""
    return f"{api_base.rstrip('/')}/bot{bot_token}/sendMessage"
