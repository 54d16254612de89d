# backend/studio/repositories/booking_repository.py
"""
Booking Repository.

Status changes are compare-and-set UPDATEs keyed on the expected current
status, so two requests racing on the same booking cannot both win.
"""

from datetime import datetime
import logging
from typing import Any, List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_fresh(self, booking_id: str) -> Optional[Booking]:
        """Load the booking, overwriting any stale state held by the session."""
        try:
            return self.db.get(Booking, booking_id, populate_existing=True)
        except SQLAlchemyError as e:
            self.logger.error(f"Error reloading booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to reload booking: {str(e)}")

    def get_by_idempotency_key(self, idempotency_key: str) -> Optional[Booking]:
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking).filter(Booking.idempotency_key == idempotency_key).first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error looking up idempotency key: {str(e)}")
            raise RepositoryException(f"Failed to look up idempotency key: {str(e)}")

    def transition_status(
        self,
        booking_id: str,
        expected_status: str,
        new_status: str,
        **values: Any,
    ) -> int:
        """
        Atomically move ``booking_id`` from ``expected_status`` to ``new_status``.

        Returns:
            Number of rows updated (0 when another request got there first)
        """
        try:
            payload = {Booking.status: new_status}
            for key, value in values.items():
                payload[getattr(Booking, key)] = value
            rows = (
                self.db.query(Booking)
                .filter(Booking.id == booking_id, Booking.status == expected_status)
                .update(payload, synchronize_session=False)
            )
            return int(rows or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error transitioning booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to update booking status: {str(e)}")

    def get_package_bookings(self, package_id: str) -> List[Booking]:
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .filter(Booking.package_id == package_id)
                .order_by(Booking.start_time)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading bookings for package {package_id}: {str(e)}")
            raise RepositoryException(f"Failed to load package bookings: {str(e)}")

    def get_elapsed_confirmed(self, as_of: datetime, limit: int = 500) -> List[Booking]:
        """Confirmed bookings whose session has ended."""
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .filter(
                    Booking.status == BookingStatus.CONFIRMED.value,
                    Booking.end_time < as_of,
                )
                .order_by(Booking.end_time)
                .limit(limit)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading elapsed bookings: {str(e)}")
            raise RepositoryException(f"Failed to load elapsed bookings: {str(e)}")

    def get_stale_pending(self, created_before: datetime, limit: int = 200) -> List[Booking]:
        """Customer requests still pending since before ``created_before``."""
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .filter(
                    Booking.status == BookingStatus.PENDING.value,
                    Booking.is_requested_by_customer.is_(True),
                    Booking.created_at <= created_before,
                )
                .order_by(Booking.created_at)
                .limit(limit)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading stale pending bookings: {str(e)}")
            raise RepositoryException(f"Failed to load pending bookings: {str(e)}")

    def get_reminder_due(
        self,
        window_start: datetime,
        window_end: datetime,
        sent_column: str,
        limit: int = 500,
    ) -> List[Booking]:
        """Confirmed customer sessions starting in the window with no reminder recorded yet."""
        sent_at = getattr(Booking, sent_column)
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .filter(
                    Booking.status == BookingStatus.CONFIRMED.value,
                    Booking.customer_id.isnot(None),
                    Booking.start_time >= window_start,
                    Booking.start_time <= window_end,
                    sent_at.is_(None),
                )
                .order_by(Booking.start_time)
                .limit(limit)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading bookings due a reminder: {str(e)}")
            raise RepositoryException(f"Failed to load reminder candidates: {str(e)}")

    def mark_reminder_sent(self, booking_id: str, sent_column: str, sent_at: datetime) -> int:
        """Record the reminder only if none was recorded and the booking is still confirmed."""
        column = getattr(Booking, sent_column)
        try:
            rows = (
                self.db.query(Booking)
                .filter(
                    Booking.id == booking_id,
                    Booking.status == BookingStatus.CONFIRMED.value,
                    column.is_(None),
                )
                .update({column: sent_at}, synchronize_session=False)
            )
            return int(rows or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error recording reminder for booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to record reminder: {str(e)}")

    def list_bookings(
        self,
        *,
        teacher_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[Booking]:
        try:
            query = self.db.query(Booking)
            if teacher_id:
                query = query.filter(Booking.teacher_id == teacher_id)
            if customer_id:
                query = query.filter(Booking.customer_id == customer_id)
            if status:
                query = query.filter(Booking.status == status)
            if start:
                query = query.filter(Booking.end_time > start)
            if end:
                query = query.filter(Booking.start_time < end)
            return cast(List[Booking], query.order_by(Booking.start_time).limit(limit).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")
