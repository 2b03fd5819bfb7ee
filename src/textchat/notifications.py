"""
Notification fan-out: an ordered list of subscribers, called synchronously
in registration order, one notification per state change.
"""

import asyncio
import logging
from typing import AsyncGenerator, Callable, Optional

from textchat.errors import TextChatError
from textchat.models.connection import ConnectionInfo
from textchat.models.message import TextMessage

logger = logging.getLogger(__name__)


class ChatNotification:
    __slots__ = ("type", "message", "connection", "error")

    def __init__(self, type: str, *, message: Optional[TextMessage] = None,
                 connection: Optional[ConnectionInfo] = None, error: Optional[TextChatError] = None):
        self.type = type
        self.message = message
        self.connection = connection
        self.error = error

    @property
    def reason(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None

    def __repr__(self) -> str:
        return f"ChatNotification(type={self.type!r}, reason={self.reason!r})"


NotificationHandler = Callable[[ChatNotification], None]


class NotificationHub:
    def __init__(self) -> None:
        self._handlers: list[NotificationHandler] = []

    def add_listener(self, handler: NotificationHandler) -> Callable[[], None]:
        """Add a subscriber. Returns a cleanup function."""
        self._handlers.append(handler)
        def remove() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def on_notification(self, handler: Optional[NotificationHandler]) -> None:
        """Set a single subscriber (replaces all). Use add_listener() to fan out."""
        self._handlers.clear()
        if handler is not None:
            self._handlers.append(handler)

    def publish(self, notification: ChatNotification) -> None:
        for handler in list(self._handlers):
            try:
                handler(notification)
            except Exception:
                logger.exception("Notification handler failed for %s", notification.type)

    async def stream(self) -> AsyncGenerator[ChatNotification, None]:
        """Yield every notification published after the generator starts."""
        queue: asyncio.Queue[ChatNotification] = asyncio.Queue()
        remove = self.add_listener(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            remove()
