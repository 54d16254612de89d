"""Booking domain events."""
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class BookingRequested:
    """Fired after a customer request is stored as PENDING."""

    booking_id: str
    customer_id: str
    teacher_id: str
    session_type: str
    start_time: datetime
    end_time: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingConfirmed:
    """Fired after a booking is confirmed and its session debited."""

    booking_id: str
    customer_id: Optional[str]
    teacher_id: str
    start_time: datetime
    auto_confirmed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingCancelled:
    """Fired after a booking ends up CANCELLED (rejected, refused or cancelled)."""

    booking_id: str
    customer_id: Optional[str]
    teacher_id: str
    cancelled_by: str  # 'customer', 'teacher' or 'system'
    reason: Optional[str] = None
    refunded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CancellationRequested:
    """Fired when a customer asks to cancel inside the approval window."""

    booking_id: str
    customer_id: Optional[str]
    teacher_id: str
    start_time: datetime
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CancellationRejected:
    """Fired when a teacher keeps a booking the customer asked to cancel."""

    booking_id: str
    customer_id: Optional[str]
    teacher_id: str
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AttendanceMarked:
    """Fired after a confirmed session is marked completed, no-show or cancelled."""

    booking_id: str
    customer_id: Optional[str]
    teacher_id: str
    outcome: str
    marked_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SessionReminder:
    """Fired once per confirmed session at each reminder lead time (24h, 6h)."""

    booking_id: str
    customer_id: Optional[str]
    teacher_id: str
    start_time: datetime
    hours_before: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
