"""Telegram Bot API delivery channel (group and channel broadcasts)."""

import httpx

from ..urls import build_send_message_url


class TelegramSendError(Exception):
    """Raised when Telegram rejects or fails to deliver a message."""

    def __init__(self, chat_id: str, description: str):
        self.chat_id = chat_id
        self.description = description
        super().__init__(f"Telegram send to {chat_id} failed: {description}")


async def send_telegram_message(
    client: httpx.AsyncClient,
    api_base: str,
    bot_token: str,
    chat_id: str,
    text: str,
) -> int | None:
    """
    Send an HTML-formatted message to a Telegram chat.

    Args:
        client: Shared HTTP client for the run
        api_base: Bot API base URL
        bot_token: Bot token
        chat_id: Group/channel id or @username
        text: Message text (Telegram HTML markup)

    Returns:
        Telegram message id if reported

    Raises:
        TelegramSendError: On non-2xx responses or an "ok": false payload
        httpx.HTTPError: On transport failures
    """
    response = await client.post(
        build_send_message_url(api_base, bot_token),
        json={
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": False,
        },
    )

    try:
        data = response.json()
    except ValueError:
        data = {}

    if not response.is_success or not data.get("ok"):
        description = data.get("description") or f"HTTP {response.status_code}"
        raise TelegramSendError(chat_id, description)

    result = data.get("result") or {}
    return result.get("message_id")
