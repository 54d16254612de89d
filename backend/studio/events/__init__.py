"""Booking domain events and their publisher."""

from .booking_events import (
    AttendanceMarked,
    BookingCancelled,
    BookingConfirmed,
    BookingRequested,
    CancellationRejected,
    CancellationRequested,
    SessionReminder,
)
from .publisher import EventPublisher

__all__ = [
    "AttendanceMarked",
    "BookingCancelled",
    "BookingConfirmed",
    "BookingRequested",
    "CancellationRejected",
    "CancellationRequested",
    "EventPublisher",
    "SessionReminder",
]
