"""External calendar synchronisation for confirmed sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from ..models.booking import Booking

logger = logging.getLogger(__name__)


class CalendarSync(Protocol):
    def create_event(self, booking: "Booking") -> Optional[str]:
        ...

    def delete_event(self, booking: "Booking") -> None:
        ...


class NullCalendarSync:
    """No-op calendar client used when no provider is configured."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        self._label = "null-calendar"

    def create_event(self, booking: "Booking") -> Optional[str]:
        logger.debug("Calendar sync disabled; skipping event for booking %s", booking.id)
        return None

    def delete_event(self, booking: "Booking") -> None:
        logger.debug("Calendar sync disabled; nothing to delete for booking %s", booking.id)


def get_calendar_sync() -> CalendarSync:
    from ..core.config import settings

    if settings.calendar_sync_enabled:
        # Only the no-op client ships with the engine; providers are injected by callers.
        logger.warning("Calendar sync is enabled but no provider is registered")
    return NullCalendarSync()
