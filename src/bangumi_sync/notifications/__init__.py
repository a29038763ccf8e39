"""
Notification sinks.

``get_notifier`` returns a Telegram sink when a bot token is configured
and a log-only sink otherwise.

Example:
    >>> notifier = get_notifier(config)
    >>> notifier.send(12345, "Frieren S01E09 updated.")
"""

from typing import Any

from bangumi_sync.notifications.base import LogNotifier, NotificationSink
from bangumi_sync.notifications.telegram import TelegramNotifier


def get_notifier(config: Any) -> NotificationSink:
    """Build the notification sink selected by the application Config."""
    if config.telegram_bot_token:
        return TelegramNotifier(
            token=config.telegram_bot_token,
            proxy_url=config.proxy_url,
            timeout=config.request_timeout,
        )
    return LogNotifier()


__all__ = [
    "LogNotifier",
    "NotificationSink",
    "TelegramNotifier",
    "get_notifier",
]
