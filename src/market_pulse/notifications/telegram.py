"""Forward error notices to a Telegram chat."""

from __future__ import annotations

import logging

from market_pulse.common.http import HttpClient
from market_pulse.config import get_settings
from market_pulse.dashboard.formatters import format_telegram_notice
from market_pulse.notifications.base import Notice

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"


class TelegramNotifier:
    """Notifier that posts notices through the Telegram Bot API.

    Only "destructive" notices are forwarded unless ``forward_all`` is set,
    so the chat sees failed saves and failed loads but not routine toasts.
    Delivery problems are logged and reported as False, never raised.
    """

    def __init__(
        self,
        bot_token: str | None = None,
        chat_id: str | None = None,
        forward_all: bool = False,
    ) -> None:
        settings = get_settings()
        self._bot_token = settings.telegram_bot_token if bot_token is None else bot_token
        self._chat_id = settings.telegram_chat_id if chat_id is None else chat_id
        self._forward_all = forward_all
        self._client: HttpClient | None = None

    @property
    def enabled(self) -> bool:
        return bool(self._bot_token) and bool(self._chat_id)

    def _http(self) -> HttpClient:
        if self._client is None:
            self._client = HttpClient(base_url=TELEGRAM_API)
        return self._client

    async def send_message(self, text: str, parse_mode: str = "Markdown") -> bool:
        """POST one message to sendMessage. Returns whether it went out."""
        if not self.enabled:
            logger.debug("Telegram bot token or chat id missing; message dropped")
            return False

        payload = {"chat_id": self._chat_id, "text": text, "parse_mode": parse_mode}
        try:
            await self._http().post(f"/bot{self._bot_token}/sendMessage", json=payload)
        except Exception:
            logger.warning("Telegram delivery to chat %s failed", self._chat_id, exc_info=True)
            return False
        return True

    async def notify(self, notice: Notice) -> bool:
        if notice.variant != "destructive" and not self._forward_all:
            return False
        return await self.send_message(format_telegram_notice(notice))

    async def close(self) -> None:
        if self._client is None:
            return
        await self._client.close()
        self._client = None
