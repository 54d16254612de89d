# backend/studio/services/notification_service.py
"""
Notification delivery for booking events.

Channel internals (LINE, push, email) live outside this service; the
engine only hands an event name and a JSON-safe payload to a ``Notifier``.
"""

import logging
from typing import Any, Dict, Protocol

from ..core.exceptions import DependencyException

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, event: str, payload: Dict[str, Any]) -> None:
        ...


class LoggingNotifier:
    """Writes notifications to the log; used in development and by the delivery task."""

    def send(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info(
            f"Notification {event} for booking {payload.get('booking_id')}",
            extra={"notification_event": event, "payload": payload},
        )


class CeleryNotifier:
    """Enqueues a delivery task so request handlers never wait on a channel."""

    def send(self, event: str, payload: Dict[str, Any]) -> None:
        from ..tasks.notification_tasks import deliver_notification

        try:
            deliver_notification.delay(event, payload)
        except Exception as e:
            raise DependencyException("notifier", f"Could not enqueue {event}: {str(e)}") from e


def get_notifier() -> Notifier:
    from ..core.config import settings

    if settings.notifications_enabled and settings.environment != "test":
        return CeleryNotifier()
    return LoggingNotifier()
