"""
Telegram Bot API notification sink.

Sends plain-text messages through the Bot API ``sendMessage`` method.

API Documentation: https://core.telegram.org/bots/api#sendmessage
"""

import logging
from typing import Optional

import requests

from bangumi_sync.errors import NotificationError
from bangumi_sync.notifications.base import NotificationSink
from bangumi_sync.utils import proxies_for

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.telegram.org"
REQUEST_TIMEOUT = 15  # seconds


class TelegramNotifier(NotificationSink):
    """
    Notification sink backed by a Telegram bot.

    Attributes:
        token: Bot token issued by BotFather
        proxy_url: Optional HTTP(S) proxy for Bot API requests
    """

    def __init__(
        self,
        token: str,
        proxy_url: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.token = token
        self.proxy_url = proxy_url
        self.timeout = timeout

    def send(self, recipient_id: int, text: str) -> None:
        """
        Send a message to a chat.

        Raises:
            NotificationError: On network errors or a non-ok Bot API reply
        """
        try:
            response = requests.post(
                f"{API_BASE_URL}/bot{self.token}/sendMessage",
                json={"chat_id": recipient_id, "text": text},
                proxies=proxies_for(self.proxy_url),
                timeout=self.timeout,
            )
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise NotificationError(f"Telegram sendMessage failed: {exc}") from exc

        if not payload.get("ok"):
            raise NotificationError(
                f"Telegram sendMessage to {recipient_id} rejected: "
                f"{payload.get('description', 'unknown error')}"
            )
        logger.debug("Sent Telegram message to %s", recipient_id)
