# backend/studio/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository.

Queries for active bookings overlapping a time window, used by the
conflict detector, the slot capacity rules and availability views.
Overlap is half-open: ``start_time < window_end AND end_time > window_start``.
"""

from datetime import datetime
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException
from ..models.booking import ACTIVE_STATUSES, Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_ACTIVE = [s.value for s in ACTIVE_STATUSES]


class ConflictCheckerRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def _overlapping(
        self,
        window_start: datetime,
        window_end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> Query:
        query = self.db.query(Booking).filter(
            Booking.status.in_(_ACTIVE),
            Booking.start_time < window_end,
            Booking.end_time > window_start,
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return query

    def get_active_bookings_in_window(
        self,
        window_start: datetime,
        window_end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """All active bookings (every teacher, blocks included) overlapping the window."""
        try:
            query = self._overlapping(window_start, window_end, exclude_booking_id)
            return cast(List[Booking], query.order_by(Booking.start_time).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading bookings in window: {str(e)}")
            raise RepositoryException(f"Failed to load bookings in window: {str(e)}")

    def get_teacher_bookings_in_window(
        self,
        teacher_id: str,
        window_start: datetime,
        window_end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        try:
            query = self._overlapping(window_start, window_end, exclude_booking_id).filter(
                Booking.teacher_id == teacher_id
            )
            return cast(List[Booking], query.all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting teacher bookings in window: {str(e)}")
            raise RepositoryException(f"Failed to get teacher bookings: {str(e)}")

    def get_customer_bookings_in_window(
        self,
        customer_id: str,
        window_start: datetime,
        window_end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        try:
            query = self._overlapping(window_start, window_end, exclude_booking_id).filter(
                Booking.customer_id == customer_id
            )
            return cast(List[Booking], query.all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting customer bookings in window: {str(e)}")
            raise RepositoryException(f"Failed to get customer bookings: {str(e)}")
