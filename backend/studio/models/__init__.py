"""
Database models for the studio booking engine.

- Teacher: schedulable staff; the row is also the per-teacher scheduling lock
- Customer: owns packages and a cancellation counter
- Package: purchased bundle of sessions
- Booking: reservation of a teacher's time (or a teacher-only block)
"""

from .booking import (
    ACTIVE_STATUSES,
    BOOKABLE_SESSION_TYPES,
    Booking,
    BookingStatus,
    SessionType,
)
from .customer import Customer
from .package import Package, PackageStatus
from .teacher import Teacher

__all__ = [
    "ACTIVE_STATUSES",
    "BOOKABLE_SESSION_TYPES",
    "Booking",
    "BookingStatus",
    "Customer",
    "Package",
    "PackageStatus",
    "SessionType",
    "Teacher",
]
