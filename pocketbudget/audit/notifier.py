"""
User-facing notifications.

The UI registers a listener and renders each Notification as a toast.
Nothing in the ledger core waits on the UI; listeners are plain
functions called synchronously.
"""

from collections import deque
from typing import Callable, Optional

import structlog

from pocketbudget.models.audit import Notification, NotificationVariant


NotificationListener = Callable[[Notification], None]


class Notifier:
    """Fan-out of notifications to UI listeners, with a short history."""

    def __init__(self, history_size: int = 50):
        self._listeners: list[NotificationListener] = []
        self._history: deque[Notification] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("pocketbudget.notifier")

    @property
    def history(self) -> list[Notification]:
        return list(self._history)

    def add_listener(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def publish(self, notification: Notification) -> None:
        self._history.append(notification)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                self._logger.error(
                    "notification_listener_failed",
                    title=notification.title,
                    error=str(e),
                )

    def notify(self, title: str, description: str) -> None:
        self.publish(Notification(title=title, description=description))

    def error(self, title: str, description: str) -> None:
        self.publish(Notification(
            title=title,
            description=description,
            variant=NotificationVariant.DESTRUCTIVE,
        ))

    def latest(self) -> Optional[Notification]:
        return self._history[-1] if self._history else None
