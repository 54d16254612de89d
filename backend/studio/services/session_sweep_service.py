# backend/studio/services/session_sweep_service.py
"""
Periodic session sweeps.

Every sweep is idempotent: rerunning it over the same data changes nothing.
Items are processed in their own transaction so one bad booking never
blocks the rest of the batch.
"""

from datetime import timedelta
import logging
from typing import Dict, NamedTuple, Optional

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.config import Settings, settings as default_settings
from ..core.exceptions import DomainException
from ..domain.booking_state_machine import BookingEvent, resolve_transition
from ..events.booking_events import SessionReminder
from ..events.publisher import EventPublisher
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_service import BookingService

logger = logging.getLogger(__name__)


class ReminderLead(NamedTuple):
    hours: int
    window_minutes: int  # half-width of the start-time window around now + hours
    sent_column: str


# Sweep runs hourly; each window is wide enough that no session slips between runs.
REMINDER_LEADS = (
    ReminderLead(24, 60, "reminder_24h_sent_at"),
    ReminderLead(6, 30, "reminder_6h_sent_at"),
)


class SessionSweepService(BaseService):
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        booking_service: Optional[BookingService] = None,
        config: Optional[Settings] = None,
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__(db, clock)
        self.settings = config or default_settings
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.package_repository = RepositoryFactory.create_package_repository(db)
        self.booking_service = booking_service or BookingService(
            db, clock=self.clock, config=self.settings
        )
        self.event_publisher = event_publisher or self.booking_service.event_publisher

    @BaseService.measure_operation("complete_elapsed_sessions")
    def complete_elapsed_sessions(self, batch_size: int = 500) -> int:
        """CONFIRMED bookings whose end time has passed become COMPLETED."""
        now = self.clock.now()
        completed = 0

        for booking in self.booking_repository.get_elapsed_confirmed(now, limit=batch_size):
            transition = resolve_transition(booking.status, BookingEvent.AUTO_COMPLETE, booking.id)
            with self.transaction():
                rows = self.booking_repository.transition_status(
                    booking.id,
                    transition.from_status.value,
                    transition.to_status.value,
                    attendance_marked_at=now,
                )
            if rows:
                completed += 1
                prometheus_metrics.record_transition(
                    transition.event.value,
                    transition.from_status.value,
                    transition.to_status.value,
                )

        if completed:
            logger.info(f"Auto-completed {completed} elapsed sessions")
        prometheus_metrics.record_sweep("complete_elapsed_sessions", completed)
        return completed

    @BaseService.measure_operation("expire_packages")
    def expire_packages(self) -> int:
        """Write the EXPIRED status snapshot for packages past valid_to."""
        now = self.clock.now()
        with self.transaction():
            expired = self.package_repository.mark_expired(now)

        if expired:
            logger.info(f"Marked {expired} packages as expired")
        prometheus_metrics.record_sweep("expire_packages", expired)
        return expired

    @BaseService.measure_operation("auto_confirm_stale_requests")
    def auto_confirm_stale_requests(self, batch_size: int = 200) -> int:
        """
        Confirm customer requests left pending longer than the configured limit.

        Goes through the regular confirm path, so the package is debited
        exactly once. Requests whose session already started are left for a
        teacher to resolve.
        """
        if not self.settings.auto_confirm_enabled:
            return 0

        now = self.clock.now()
        cutoff = now - timedelta(hours=self.settings.auto_confirm_after_hours)
        confirmed = 0

        for booking in self.booking_repository.get_stale_pending(cutoff, limit=batch_size):
            if booking.start_time <= now:
                logger.info(f"Skipping auto-confirm for booking {booking.id}: session has started")
                continue
            try:
                self.booking_service.confirm_booking(booking.id, confirmed_by="system", auto=True)
                confirmed += 1
            except DomainException as e:
                logger.warning(
                    f"Auto-confirm skipped for booking {booking.id}: {e.code}: {e.message}",
                    extra={"booking_id": booking.id, "error_code": e.code},
                )

        if confirmed:
            logger.info(f"Auto-confirmed {confirmed} pending requests")
        prometheus_metrics.record_sweep("auto_confirm_stale_requests", confirmed)
        return confirmed

    @BaseService.measure_operation("create_session_reminders")
    def create_session_reminders(self, batch_size: int = 500) -> int:
        """
        Remind customers 24 hours and 6 hours before each confirmed session.

        Each reminder is recorded on the booking with a compare-and-set write
        before it is published, so reruns and overlapping workers never send
        the same reminder twice.
        """
        if not self.settings.session_reminders_enabled:
            return 0

        now = self.clock.now()
        created = 0

        for lead in REMINDER_LEADS:
            target = now + timedelta(hours=lead.hours)
            half_window = timedelta(minutes=lead.window_minutes)
            due = self.booking_repository.get_reminder_due(
                target - half_window, target + half_window, lead.sent_column, limit=batch_size
            )
            for booking in due:
                with self.transaction():
                    rows = self.booking_repository.mark_reminder_sent(
                        booking.id, lead.sent_column, now
                    )
                if not rows:
                    continue
                created += 1
                self.event_publisher.publish(
                    SessionReminder(
                        booking_id=booking.id,
                        customer_id=booking.customer_id,
                        teacher_id=booking.teacher_id,
                        start_time=booking.start_time,
                        hours_before=lead.hours,
                    )
                )

        if created:
            logger.info(f"Created {created} session reminders")
        prometheus_metrics.record_sweep("create_session_reminders", created)
        return created

    def run_all(self) -> Dict[str, int]:
        """Run every sweep once, auto-confirm first so confirmations can later complete."""
        return {
            "auto_confirmed": self.auto_confirm_stale_requests(),
            "completed": self.complete_elapsed_sessions(),
            "expired_packages": self.expire_packages(),
            "reminders_created": self.create_session_reminders(),
        }
