"""
Reward signals

- Notifier: persisted notifications (notifications table). Best-effort, a
  failure here never undoes a score write.
- CelebrationBus: in-process events the presentation layer subscribes to for
  full-screen reward animations. Nothing is persisted.
"""

import logging
from typing import Callable, List, Protocol

from glowup.db import queries
from glowup.models.scoring import Celebration, Notification

logger = logging.getLogger(__name__)

CelebrationHandler = Callable[[Celebration], None]


class Notifier(Protocol):
    async def emit_notification(self, notification: Notification) -> None:
        ...


class DatabaseNotifier:
    """Writes reward notifications to the notifications table"""

    async def emit_notification(self, notification: Notification) -> None:
        await queries.create_notification(
            notification.user_id,
            notification.title,
            notification.message,
            notification.kind.value,
        )
        logger.debug(f"Notification '{notification.title}' stored for user {notification.user_id}")


class InMemoryNotifier:
    """Collects notifications in a list"""

    def __init__(self):
        self.sent: List[Notification] = []

    async def emit_notification(self, notification: Notification) -> None:
        self.sent.append(notification)


class CelebrationBus:
    """Fan-out of celebration events to subscribed handlers"""

    def __init__(self):
        self._handlers: List[CelebrationHandler] = []

    def subscribe(self, handler: CelebrationHandler) -> Callable[[], None]:
        """Register a handler; returns a function that unsubscribes it"""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def emit_celebration(self, celebration: Celebration) -> None:
        for handler in list(self._handlers):
            try:
                handler(celebration)
            except Exception as e:
                logger.warning(f"Celebration handler {handler!r} failed: {e}")
