"""
Notification collaborators.

The cart never raises persistence or input problems into the UI; it reports
them through a notifier, a fire-and-forget ``notify(kind, message)`` call.
"""

import logging
from typing import Protocol

from ..models.notification import Notification, NotificationKind

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    NotificationKind.SUCCESS: logging.INFO,
    NotificationKind.INFO: logging.INFO,
    NotificationKind.ERROR: logging.ERROR,
}


class Notifier(Protocol):
    def notify(self, kind: NotificationKind, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that only writes to the log"""

    def notify(self, kind: NotificationKind, message: str) -> None:
        logger.log(_LOG_LEVELS[kind], f"[{kind.value}] {message}")


class QueueNotifier(LoggingNotifier):
    """
    Notifier that buffers messages until the UI drains them.

    Each cart session owns one; API responses hand pending toasts to the
    client and clear the buffer.
    """

    def __init__(self, max_pending: int = 50):
        self.max_pending = max_pending
        self._pending: list[Notification] = []

    def notify(self, kind: NotificationKind, message: str) -> None:
        super().notify(kind, message)
        self._pending.append(Notification(kind=kind, message=message))
        # Oldest toasts are dropped first
        if len(self._pending) > self.max_pending:
            del self._pending[: len(self._pending) - self.max_pending]

    @property
    def pending(self) -> list[Notification]:
        return list(self._pending)

    def drain(self) -> list[Notification]:
        """Return and clear pending notifications"""
        pending, self._pending = self._pending, []
        return pending
