# backend/studio/services/conflict_checker.py
"""
Conflict Checker Service for the studio booking engine.

Detects double-booking for a single customer or a single teacher.
These checks run before the studio-wide capacity rules so that the
more specific error is reported first.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.constants import CUSTOMER_CONFLICT_MESSAGE, TEACHER_CONFLICT_MESSAGE
from ..core.exceptions import BookingConflictException
from ..domain.interval import TimeInterval
from ..models.booking import Booking
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from .base import BaseService

logger = logging.getLogger(__name__)

BookingPredicate = Callable[[Booking], bool]


def find_overlaps(
    bookings: Iterable[Booking],
    interval: TimeInterval,
    predicate: Optional[BookingPredicate] = None,
) -> List[Booking]:
    """Active bookings intersecting ``interval`` (half-open) that satisfy ``predicate``."""
    return [
        booking
        for booking in bookings
        if booking.is_active
        and interval.overlaps(booking.start_time, booking.end_time)
        and (predicate is None or predicate(booking))
    ]


def exists_overlap(
    bookings: Iterable[Booking],
    interval: TimeInterval,
    predicate: Optional[BookingPredicate] = None,
) -> bool:
    return bool(find_overlaps(bookings, interval, predicate))


def _describe(booking: Booking) -> Dict[str, Any]:
    return {
        "booking_id": booking.id,
        "teacher_id": booking.teacher_id,
        "customer_id": booking.customer_id,
        "session_type": booking.session_type,
        "status": booking.status,
        "start_time": booking.start_time.isoformat(),
        "end_time": booking.end_time.isoformat(),
    }


class ConflictChecker(BaseService):
    """
    Service for detecting customer and teacher double-booking.

    All methods read active (PENDING, CONFIRMED, CANCELLATION_REQUESTED)
    bookings only; terminal bookings never conflict.
    """

    def __init__(self, db: Session, repository: Optional[ConflictCheckerRepository] = None):
        super().__init__(db)
        self.repository = repository or ConflictCheckerRepository(db)

    @BaseService.measure_operation("check_customer_conflicts")
    def check_customer_conflicts(
        self,
        customer_id: str,
        interval: TimeInterval,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        bookings = self.repository.get_customer_bookings_in_window(
            customer_id, interval.start, interval.end, exclude_booking_id=exclude_booking_id
        )
        return [_describe(b) for b in find_overlaps(bookings, interval)]

    @BaseService.measure_operation("check_teacher_conflicts")
    def check_teacher_conflicts(
        self,
        teacher_id: str,
        interval: TimeInterval,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Includes BLOCKED entries, which mark the teacher unavailable."""
        bookings = self.repository.get_teacher_bookings_in_window(
            teacher_id, interval.start, interval.end, exclude_booking_id=exclude_booking_id
        )
        return [_describe(b) for b in find_overlaps(bookings, interval)]

    def ensure_no_conflicts(
        self,
        *,
        teacher_id: str,
        interval: TimeInterval,
        customer_id: Optional[str] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        """
        Raise on customer or teacher double-booking.

        Raises:
            BookingConflictException: CUSTOMER_CONFLICT or TEACHER_CONFLICT
        """
        if customer_id:
            customer_conflicts = self.check_customer_conflicts(
                customer_id, interval, exclude_booking_id
            )
            if customer_conflicts:
                logger.warning(
                    f"Customer {customer_id} already booked during "
                    f"{interval.start.isoformat()}-{interval.end.isoformat()}"
                )
                raise BookingConflictException(
                    CUSTOMER_CONFLICT_MESSAGE,
                    code="CUSTOMER_CONFLICT",
                    details={"conflicts": customer_conflicts},
                )

        teacher_conflicts = self.check_teacher_conflicts(teacher_id, interval, exclude_booking_id)
        if teacher_conflicts:
            logger.warning(
                f"Teacher {teacher_id} already booked during "
                f"{interval.start.isoformat()}-{interval.end.isoformat()}"
            )
            raise BookingConflictException(
                TEACHER_CONFLICT_MESSAGE,
                code="TEACHER_CONFLICT",
                details={"conflicts": teacher_conflicts},
            )
