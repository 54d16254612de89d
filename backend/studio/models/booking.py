# backend/studio/models/booking.py
"""
Booking model for the studio.

A booking reserves one teacher's time for one customer over a half-open
interval [start_time, end_time). Teacher-only time blocks are stored as
bookings with session type BLOCKED and no customer or package.

Status changes go through ``studio.domain.booking_state_machine``; the model
itself only carries data and small read-only helpers.
"""

from datetime import datetime
from enum import Enum
import logging
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.constants import IDEMPOTENCY_UNIQUE_CONSTRAINT, TEACHER_SLOT_UNIQUE_INDEX
from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"  # Requested by customer, awaiting teacher
    CONFIRMED = "CONFIRMED"  # Session debited from package
    CANCELLATION_REQUESTED = "CANCELLATION_REQUESTED"  # Awaiting teacher decision
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


class SessionType(str, Enum):
    PRIVATE = "PRIVATE"
    DUO = "DUO"
    GROUP = "GROUP"
    BLOCKED = "BLOCKED"


# Statuses that occupy a slot and count toward capacity
ACTIVE_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.CANCELLATION_REQUESTED,
)

BOOKABLE_SESSION_TYPES = (SessionType.PRIVATE, SessionType.DUO, SessionType.GROUP)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Core relationships
    customer_id = Column(String(26), ForeignKey("customers.id"), nullable=True, index=True)
    teacher_id = Column(String(26), ForeignKey("teachers.id"), nullable=False, index=True)
    package_id = Column(String(26), ForeignKey("packages.id"), nullable=True, index=True)

    session_type = Column(String(20), nullable=False)
    start_time = Column(UTCDateTime, nullable=False, index=True)
    end_time = Column(UTCDateTime, nullable=False)

    status = Column(String(30), nullable=False, default=BookingStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    is_requested_by_customer = Column(Boolean, nullable=False, default=False)
    auto_confirmed = Column(Boolean, nullable=False, default=False)

    created_by = Column(String(26), nullable=True)
    confirmed_by = Column(String(26), nullable=True)
    confirmed_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)
    attendance_marked_at = Column(UTCDateTime, nullable=True)
    reminder_24h_sent_at = Column(UTCDateTime, nullable=True)
    reminder_6h_sent_at = Column(UTCDateTime, nullable=True)

    calendar_event_id = Column(String(255), nullable=True)
    idempotency_key = Column(String(128), nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    customer = relationship("Customer", foreign_keys=[customer_id])
    teacher = relationship("Teacher", back_populates="bookings")
    package = relationship("Package", back_populates="bookings")

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CANCELLATION_REQUESTED', "
            "'CANCELLED', 'COMPLETED', 'NO_SHOW')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "session_type IN ('PRIVATE', 'DUO', 'GROUP', 'BLOCKED')",
            name="ck_bookings_session_type",
        ),
        CheckConstraint("end_time > start_time", name="check_time_order"),
        CheckConstraint(
            "package_id IS NULL OR session_type <> 'BLOCKED'",
            name="check_blocked_has_no_package",
        ),
        CheckConstraint(
            "customer_id IS NOT NULL OR session_type = 'BLOCKED'",
            name="check_customer_required",
        ),
        UniqueConstraint("idempotency_key", name=IDEMPOTENCY_UNIQUE_CONSTRAINT),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: customer={self.customer_id}, teacher={self.teacher_id}, "
            f"type={self.session_type}, {self.start_time}-{self.end_time}, status={self.status}>"
        )

    @property
    def is_active(self) -> bool:
        return self.status in {s.value for s in ACTIVE_STATUSES}

    @property
    def is_block(self) -> bool:
        return self.session_type == SessionType.BLOCKED.value

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap test against [start, end)."""
        return self.start_time < end and self.end_time > start

    def _iso(self, value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "teacher_id": self.teacher_id,
            "package_id": self.package_id,
            "session_type": self.session_type,
            "start_time": self._iso(self.start_time),
            "end_time": self._iso(self.end_time),
            "status": self.status,
            "notes": self.notes,
            "cancellation_reason": self.cancellation_reason,
            "created_by": self.created_by,
            "confirmed_by": self.confirmed_by,
            "confirmed_at": self._iso(self.confirmed_at),
            "cancelled_at": self._iso(self.cancelled_at),
            "attendance_marked_at": self._iso(self.attendance_marked_at),
            "calendar_event_id": self.calendar_event_id,
        }


# Storage-level guard against two concurrent requests booking the same slot
# for one teacher.
Index(
    TEACHER_SLOT_UNIQUE_INDEX,
    Booking.teacher_id,
    Booking.start_time,
    Booking.end_time,
    unique=True,
    sqlite_where=Booking.status.in_([s.value for s in ACTIVE_STATUSES]),
    postgresql_where=Booking.status.in_([s.value for s in ACTIVE_STATUSES]),
)

Index(
    "ix_bookings_teacher_window",
    Booking.teacher_id,
    Booking.start_time,
    Booking.end_time,
)
