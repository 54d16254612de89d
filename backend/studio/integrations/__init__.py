"""External service integrations for the studio booking engine."""

from .calendar_sync import CalendarSync, NullCalendarSync, get_calendar_sync

__all__ = ["CalendarSync", "NullCalendarSync", "get_calendar_sync"]
