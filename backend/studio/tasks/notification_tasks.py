# backend/studio/tasks/notification_tasks.py
"""
Celery task that delivers booking notifications.

Channel providers (LINE, push, email) are outside the engine; delivery here
goes through the logging notifier until one is wired in.
"""

from __future__ import annotations

from typing import Any, Dict

from celery.app.task import Task  # noqa: F401 - used for type hints
from celery.utils.log import get_task_logger

from studio.services.notification_service import LoggingNotifier
from studio.tasks.celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(
    name="studio.tasks.notifications.deliver_notification",
    bind=True,
    max_retries=5,
    default_retry_delay=30,
    queue="notifications",
)
def deliver_notification(self: "Task[Any, Any]", event: str, payload: Dict[str, Any]) -> bool:
    """Deliver a single notification; retried with backoff on failure."""
    try:
        LoggingNotifier().send(event, payload)
    except Exception as exc:
        logger.warning(
            "Delivery of %s for booking %s failed (attempt %s): %s",
            event,
            payload.get("booking_id"),
            self.request.retries + 1,
            exc,
        )
        raise self.retry(exc=exc)
    return True
