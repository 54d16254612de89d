# backend/studio/services/availability_service.py
"""
Availability Service.

Answers "what can be booked in this window" by running the slot capacity
rules over every active booking that overlaps it. Reads only; nothing here
takes locks, so results are advisory until a booking operation re-checks
them under the teacher lock.
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.config import Settings, settings as default_settings
from ..core.exceptions import ValidationException
from ..domain.interval import TimeInterval
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .slot_capacity import SlotAssessment, assess_slot

logger = logging.getLogger(__name__)

# Upper bound on the slots returned for a single query.
MAX_SLOTS_PER_QUERY = 24 * 14


class AvailabilityService(BaseService):
    def __init__(
        self, db: Session, clock: Optional[Clock] = None, config: Optional[Settings] = None
    ):
        super().__init__(db, clock)
        self.settings = config or default_settings
        self.conflict_repository = RepositoryFactory.create_conflict_checker_repository(db)

    @BaseService.measure_operation("check_slot")
    def check_slot(
        self,
        start_time: datetime,
        end_time: datetime,
        teacher_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> SlotAssessment:
        """Assess a single interval."""
        interval = TimeInterval(start_time, end_time)
        bookings = self.conflict_repository.get_active_bookings_in_window(
            interval.start, interval.end, exclude_booking_id=exclude_booking_id
        )
        return assess_slot(
            bookings,
            interval,
            teacher_id=teacher_id,
            customer_id=customer_id,
            max_teachers=self.settings.max_concurrent_teachers,
        )

    @BaseService.measure_operation("get_availability")
    def get_availability(
        self,
        start_time: datetime,
        end_time: datetime,
        teacher_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        slot_minutes: Optional[int] = None,
    ) -> List[SlotAssessment]:
        """
        Split ``[start_time, end_time)`` into fixed slots and assess each one.

        Args:
            start_time: Window start (UTC or tz-aware)
            end_time: Window end
            teacher_id: Teacher the caller wants to book, if any
            customer_id: Customer the caller books for, if any
            slot_minutes: Slot length; defaults to the session duration

        Returns:
            One assessment per slot, in time order
        """
        window = TimeInterval(start_time, end_time)
        minutes = slot_minutes or self.settings.session_duration_minutes
        if minutes <= 0:
            raise ValidationException(
                "Slot length must be positive", code="INVALID_SLOT_LENGTH"
            )
        if window.duration_minutes < minutes:
            raise ValidationException(
                f"Availability window is shorter than one {minutes}-minute slot",
                code="WINDOW_TOO_SMALL",
                details={"slot_minutes": minutes, "window_minutes": window.duration_minutes},
            )
        if window.duration_minutes // minutes > MAX_SLOTS_PER_QUERY:
            raise ValidationException(
                f"Availability window is too large (max {MAX_SLOTS_PER_QUERY} slots)",
                code="WINDOW_TOO_LARGE",
                details={"slot_minutes": minutes},
            )

        # One query for the whole window; each slot filters in memory.
        bookings = self.conflict_repository.get_active_bookings_in_window(window.start, window.end)
        results = [
            assess_slot(
                bookings,
                slot,
                teacher_id=teacher_id,
                customer_id=customer_id,
                max_teachers=self.settings.max_concurrent_teachers,
            )
            for slot in window.slots(minutes)
        ]
        logger.debug(
            f"Assessed {len(results)} slots for window {window.start.isoformat()}"
            f" - {window.end.isoformat()}"
        )
        return results

    def summarize(self, assessments: List[SlotAssessment]) -> Dict[str, Any]:
        counts: Dict[str, int] = {}
        for assessment in assessments:
            counts[assessment.status.value] = counts.get(assessment.status.value, 0) + 1
        return {"total_slots": len(assessments), "by_status": counts}
