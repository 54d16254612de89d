"""Event publisher - hands domain events to the notifier after commit."""
from datetime import datetime
import logging
from typing import Any, Dict, Protocol

from studio.monitoring.prometheus_metrics import prometheus_metrics
from studio.services.notification_service import Notifier

logger = logging.getLogger(__name__)


class Event(Protocol):
    """Protocol for event types."""

    def to_dict(self) -> Dict[str, Any]:
        ...


class EventPublisher:
    """Publishes domain events; delivery failures are logged, never raised."""

    def __init__(self, notifier: Notifier):
        self.notifier = notifier

    def publish(self, event: Event) -> bool:
        event_type = type(event).__name__
        payload = event.to_dict()

        # Convert datetime objects to ISO strings for JSON serialization
        for key, value in payload.items():
            if isinstance(value, datetime):
                payload[key] = value.isoformat()

        try:
            self.notifier.send(event_type, payload)
            return True
        except Exception as e:
            prometheus_metrics.record_dependency_failure("notifier")
            logger.error(
                f"Failed to publish {event_type} for booking {payload.get('booking_id')}: {str(e)}",
                extra={"event_type": event_type, "booking_id": payload.get("booking_id")},
            )
            return False
