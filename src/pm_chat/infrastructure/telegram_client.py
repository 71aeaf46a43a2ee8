"""Outgoing Telegram Bot API calls (sendMessage only).

Delivery is best effort: failures are logged and reported as False, never
raised, so a chat outage cannot undo a committed stake or resolution.
"""

import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4096


class ChatSenderProtocol(Protocol):
    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict[str, Any] | None = None
    ) -> bool: ...


class TelegramClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        bot_token: str,
        api_base: str = "https://api.telegram.org",
        timeout_seconds: float = 10.0,
    ) -> None:
        self._client = client
        self._url = f"{api_base}/bot{bot_token}/sendMessage"
        self._timeout = timeout_seconds

    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict[str, Any] | None = None
    ) -> bool:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text[:MAX_MESSAGE_LENGTH],
            "disable_web_page_preview": True,
        }
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        try:
            resp = await self._client.post(self._url, json=payload, timeout=self._timeout)
        except httpx.TimeoutException:
            logger.warning("Telegram: timeout sending to chat %s", chat_id)
            return False
        except httpx.HTTPError as exc:
            logger.warning("Telegram: error sending to chat %s: %s", chat_id, type(exc).__name__)
            return False
        if resp.status_code != 200:
            logger.warning(
                "Telegram API error for chat %s: %d %s",
                chat_id, resp.status_code, resp.text[:100],
            )
            return False
        return True


def web_app_keyboard(button_text: str, web_app_url: str) -> dict[str, Any]:
    """Persistent reply keyboard with a single Web-App launch button."""
    return {
        "keyboard": [[{"text": button_text, "web_app": {"url": web_app_url}}]],
        "resize_keyboard": True,
        "one_time_keyboard": False,
    }
