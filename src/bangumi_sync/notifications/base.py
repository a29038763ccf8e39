"""
Notification sink interface.

A sink delivers short text messages to recipients identified by an
integer id (a chat id for chat-based sinks).
"""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """
    Abstract base class for notification sinks.

    Implementations raise NotificationError when a message cannot be
    delivered.
    """

    @abstractmethod
    def send(self, recipient_id: int, text: str) -> None:
        """Deliver one message to one recipient."""


class LogNotifier(NotificationSink):
    """Sink that only writes messages to the log."""

    def send(self, recipient_id: int, text: str) -> None:
        logger.info("Notify %s: %s", recipient_id, text)
