# backend/studio/services/booking_service.py
"""
Booking Service for the studio booking engine.

Orchestrates every booking operation:
- Customer requests (PENDING) and teacher-entered manual sessions (CONFIRMED)
- Confirmation with package debit, rejection, direct cancellation
- Customer cancellation under the time-window policy and teacher approval
- Attendance marking
- Teacher time blocks

Each operation runs in one database transaction. Scheduling checks take the
teacher's row lock before reading overlapping bookings; status changes are
compare-and-set updates; package counters move through atomic UPDATEs.
Calendar sync and notifications run only after commit and never fail the
operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.clock import Clock, ensure_utc
from ..core.config import Settings, settings as default_settings
from ..core.constants import (
    GENERIC_CONFLICT_MESSAGE,
    IDEMPOTENCY_UNIQUE_CONSTRAINT,
    TEACHER_CONFLICT_MESSAGE,
    TEACHER_SLOT_UNIQUE_INDEX,
)
from ..core.exceptions import (
    BookingConflictException,
    InvalidTransitionException,
    NotFoundException,
    OutsideAdvanceWindowException,
    PackageDepletedException,
    PackageInactiveException,
    PackageInvalidPeriodException,
    ValidationException,
)
from ..domain.booking_state_machine import (
    BookingEvent,
    SideEffects,
    Transition,
    resolve_transition,
)
from ..domain.interval import TimeInterval
from ..events import (
    AttendanceMarked,
    BookingCancelled,
    BookingConfirmed,
    BookingRequested,
    CancellationRejected,
    CancellationRequested,
    EventPublisher,
)
from ..integrations.calendar_sync import CalendarSync, get_calendar_sync
from ..models.booking import BOOKABLE_SESSION_TYPES, Booking, BookingStatus, SessionType
from ..models.customer import Customer
from ..models.package import Package, PackageStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from . import package_ledger
from .base import BaseService
from .cancellation_policy_engine import CancellationOutcome, CancellationPolicyEngine
from .conflict_checker import ConflictChecker
from .notification_service import Notifier, get_notifier
from .slot_capacity import SlotAssessment, assess_slot, ensure_bookable

logger = logging.getLogger(__name__)

_ATTENDANCE_EVENTS = {
    BookingStatus.COMPLETED: BookingEvent.MARK_COMPLETE,
    BookingStatus.NO_SHOW: BookingEvent.MARK_NO_SHOW,
    BookingStatus.CANCELLED: BookingEvent.MARK_CANCELLED,
}


class _IdempotentReplay(Exception):
    """A concurrent request already stored a booking under the same idempotency key."""


@dataclass(frozen=True)
class BookingOverrides:
    """Changes a teacher may apply while confirming a request."""

    teacher_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None

    def changes_schedule(self, booking: Booking) -> bool:
        return any(
            [
                self.teacher_id is not None and self.teacher_id != booking.teacher_id,
                self.start_time is not None and ensure_utc(self.start_time) != booking.start_time,
                self.end_time is not None and ensure_utc(self.end_time) != booking.end_time,
            ]
        )


class BookingService(BaseService):
    """
    Service layer for booking operations.

    Collaborators (clock, calendar sync, notifier) are injected so every
    time-window rule can be exercised deterministically.
    """

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        calendar_sync: Optional[CalendarSync] = None,
        notifier: Optional[Notifier] = None,
        config: Optional[Settings] = None,
    ):
        super().__init__(db, clock)
        self.settings = config or default_settings
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.package_repository = RepositoryFactory.create_package_repository(db)
        self.customer_repository = RepositoryFactory.create_customer_repository(db)
        self.teacher_repository = RepositoryFactory.create_teacher_repository(db)
        self.conflict_repository = RepositoryFactory.create_conflict_checker_repository(db)
        self.conflict_checker = ConflictChecker(db, self.conflict_repository)
        self.policy_engine = CancellationPolicyEngine(
            direct_hours=self.settings.cancellation_direct_hours,
            request_hours=self.settings.cancellation_request_hours,
        )
        self.calendar_sync = calendar_sync or get_calendar_sync()
        self.event_publisher = EventPublisher(notifier or get_notifier())

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @BaseService.measure_operation("request_booking")
    def request_booking(
        self,
        customer_id: str,
        session_type: SessionType | str,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        teacher_id: Optional[str] = None,
        package_id: Optional[str] = None,
        notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Booking:
        """
        Store a customer's booking request as PENDING.

        The teacher defaults to the customer's preferred teacher and the end
        time to the configured session length.

        Raises:
            ValidationException: malformed input or missing teacher
            OutsideAdvanceWindowException: start is too soon
            NotFoundException: unknown customer, teacher or package
            PackageInactiveException / PackageInvalidPeriodException /
            PackageDepletedException: package can't cover the session
            BookingConflictException: double-booking or studio capacity
        """
        if idempotency_key:
            existing = self.booking_repository.get_by_idempotency_key(idempotency_key)
            if existing is not None:
                return self._replay(existing, customer_id)

        requested_type = self._parse_session_type(session_type)
        interval = self._build_interval(start_time, end_time)
        now = self.clock.now()

        hours_ahead = (interval.start - now).total_seconds() / 3600
        if hours_ahead < self.settings.min_booking_hours_advance:
            raise OutsideAdvanceWindowException(
                self.settings.min_booking_hours_advance, hours_ahead
            )

        customer = self._get_customer(customer_id)
        resolved_teacher_id = teacher_id or customer.preferred_teacher_id
        if not resolved_teacher_id:
            raise ValidationException(
                "A teacher must be selected for this booking",
                code="TEACHER_REQUIRED",
            )

        try:
            with self.transaction():
                self._lock_teacher(resolved_teacher_id)
                if package_id:
                    self._validate_package(package_id, customer, requested_type, interval, now)
                self._check_schedule(resolved_teacher_id, interval, requested_type, customer.id)
                booking = self._create_booking(
                    customer_id=customer.id,
                    teacher_id=resolved_teacher_id,
                    package_id=package_id,
                    session_type=requested_type.value,
                    start_time=interval.start,
                    end_time=interval.end,
                    status=BookingStatus.PENDING.value,
                    notes=notes,
                    is_requested_by_customer=True,
                    created_by=customer.id,
                    created_at=now,
                    idempotency_key=idempotency_key,
                )
        except _IdempotentReplay:
            existing = self.booking_repository.get_by_idempotency_key(idempotency_key or "")
            if existing is None:
                raise BookingConflictException(GENERIC_CONFLICT_MESSAGE)
            return self._replay(existing, customer_id)

        self.log_operation(
            "request_booking",
            booking_id=booking.id,
            customer_id=customer.id,
            teacher_id=resolved_teacher_id,
        )
        self.event_publisher.publish(
            BookingRequested(
                booking_id=booking.id,
                customer_id=customer.id,
                teacher_id=resolved_teacher_id,
                session_type=booking.session_type,
                start_time=booking.start_time,
                end_time=booking.end_time,
            )
        )
        return booking

    @BaseService.measure_operation("create_manual_session")
    def create_manual_session(
        self,
        teacher_id: str,
        customer_id: str,
        session_type: SessionType | str,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        package_id: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Booking:
        """
        Record a teacher-entered session, CONFIRMED immediately.

        Skips the customer advance-notice rule but runs every other check and
        debits the package in the same transaction.
        """
        requested_type = self._parse_session_type(session_type)
        interval = self._build_interval(start_time, end_time)
        now = self.clock.now()
        customer = self._get_customer(customer_id)

        with self.transaction():
            self._lock_teacher(teacher_id)
            if package_id:
                self._validate_package(package_id, customer, requested_type, interval, now)
            self._check_schedule(teacher_id, interval, requested_type, customer.id)
            booking = self._create_booking(
                customer_id=customer.id,
                teacher_id=teacher_id,
                package_id=package_id,
                session_type=requested_type.value,
                start_time=interval.start,
                end_time=interval.end,
                status=BookingStatus.CONFIRMED.value,
                notes=notes,
                is_requested_by_customer=False,
                created_by=created_by or teacher_id,
                created_at=now,
                confirmed_at=now,
                confirmed_by=created_by or teacher_id,
            )
            if package_id:
                self._debit(package_id)

        self.log_operation("create_manual_session", booking_id=booking.id, teacher_id=teacher_id)
        self._after_commit(
            booking,
            SideEffects(create_calendar_event=True, notify_customer=True),
            BookingConfirmed(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                teacher_id=booking.teacher_id,
                start_time=booking.start_time,
            ),
        )
        return booking

    @BaseService.measure_operation("block_time")
    def block_time(
        self,
        teacher_id: str,
        start_time: datetime,
        end_time: datetime,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Booking:
        """
        Mark a teacher unavailable. Blocks only affect the owning teacher and
        never count toward studio capacity.
        """
        interval = TimeInterval(start_time, end_time)
        now = self.clock.now()

        with self.transaction():
            self._lock_teacher(teacher_id)
            self.conflict_checker.ensure_no_conflicts(teacher_id=teacher_id, interval=interval)
            booking = self._create_booking(
                customer_id=None,
                teacher_id=teacher_id,
                package_id=None,
                session_type=SessionType.BLOCKED.value,
                start_time=interval.start,
                end_time=interval.end,
                status=BookingStatus.CONFIRMED.value,
                notes=notes,
                is_requested_by_customer=False,
                created_by=created_by or teacher_id,
                created_at=now,
                confirmed_at=now,
                confirmed_by=created_by or teacher_id,
            )

        self.log_operation("block_time", booking_id=booking.id, teacher_id=teacher_id)
        return booking

    @BaseService.measure_operation("unblock_time")
    def unblock_time(self, booking_id: str) -> None:
        """Delete a time block outright."""
        with self.transaction():
            booking = self._get_booking(booking_id)
            if not booking.is_block:
                raise ValidationException(
                    "Only blocked time can be removed; cancel bookings instead",
                    code="NOT_A_BLOCK",
                    details={"booking_id": booking_id},
                )
            self.booking_repository.delete(booking.id)

        self.log_operation("unblock_time", booking_id=booking_id)

    # ------------------------------------------------------------------
    # Teacher decisions on requests
    # ------------------------------------------------------------------

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(
        self,
        booking_id: str,
        overrides: Optional[BookingOverrides] = None,
        confirmed_by: Optional[str] = None,
        auto: bool = False,
    ) -> Booking:
        """
        PENDING -> CONFIRMED, debiting the package exactly once.

        Overrides that move the session re-run the conflict and capacity
        checks against the new teacher/time.

        Raises:
            InvalidTransitionException: booking is no longer pending
            BookingConflictException: overrides collide with another booking
            PackageDepletedException: package counter is already at zero
        """
        now = self.clock.now()

        with self.transaction():
            booking = self._get_booking(booking_id)
            transition = resolve_transition(booking.status, BookingEvent.CONFIRM, booking.id)

            values: Dict[str, Any] = {
                "confirmed_at": now,
                "confirmed_by": confirmed_by,
                "auto_confirmed": auto,
            }
            if overrides is not None:
                if overrides.changes_schedule(booking):
                    values.update(self._reschedule_for_confirmation(booking, overrides))
                if overrides.notes is not None:
                    values["notes"] = overrides.notes

            self._apply_transition(booking, transition, **values)
            self._apply_ledger_effects(booking, transition.effects)
            booking = self._reload(booking.id)

        self.log_operation(
            "confirm_booking", booking_id=booking.id, auto=auto, package_id=booking.package_id
        )
        self._after_commit(
            booking,
            transition.effects,
            BookingConfirmed(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                teacher_id=booking.teacher_id,
                start_time=booking.start_time,
                auto_confirmed=auto,
            ),
        )
        return booking

    @BaseService.measure_operation("reject_booking")
    def reject_booking(
        self, booking_id: str, reason: Optional[str] = None, rejected_by: Optional[str] = None
    ) -> Booking:
        """PENDING -> CANCELLED. Nothing was debited, so nothing is refunded."""
        now = self.clock.now()

        with self.transaction():
            booking = self._get_booking(booking_id)
            transition = resolve_transition(booking.status, BookingEvent.REJECT, booking.id)
            self._apply_transition(
                booking, transition, cancellation_reason=reason, cancelled_at=now
            )
            booking = self._reload(booking.id)

        self.log_operation("reject_booking", booking_id=booking.id, rejected_by=rejected_by)
        self._after_commit(
            booking,
            transition.effects,
            BookingCancelled(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                teacher_id=booking.teacher_id,
                cancelled_by="teacher",
                reason=reason,
            ),
        )
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self, booking_id: str, reason: Optional[str] = None, cancelled_by: Optional[str] = None
    ) -> Booking:
        """
        Teacher/admin direct cancel from PENDING or CONFIRMED.

        Refunds only when the booking had been confirmed. Does not count
        against the customer.
        """
        now = self.clock.now()

        with self.transaction():
            booking = self._get_booking(booking_id)
            transition = resolve_transition(booking.status, BookingEvent.DIRECT_CANCEL, booking.id)
            self._apply_transition(
                booking, transition, cancellation_reason=reason, cancelled_at=now
            )
            self._apply_ledger_effects(booking, transition.effects)
            booking = self._reload(booking.id)

        self.log_operation("cancel_booking", booking_id=booking.id, cancelled_by=cancelled_by)
        self._after_commit(
            booking,
            transition.effects,
            BookingCancelled(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                teacher_id=booking.teacher_id,
                cancelled_by="teacher",
                reason=reason,
                refunded=transition.effects.refund_package and bool(booking.package_id),
            ),
        )
        return booking

    # ------------------------------------------------------------------
    # Customer cancellation
    # ------------------------------------------------------------------

    @BaseService.measure_operation("request_cancellation")
    def request_cancellation(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        """
        Customer cancellation of a confirmed booking.

        At or beyond the direct window the booking is cancelled and refunded
        immediately; inside it the booking waits for teacher approval; too
        close to the start the request is refused.

        Raises:
            InvalidTransitionException: booking is not CONFIRMED
            CancellationPolicyException: too late to cancel
        """
        now = self.clock.now()

        with self.transaction():
            booking = self._get_booking(booking_id)
            if booking.status != BookingStatus.CONFIRMED.value:
                raise InvalidTransitionException(
                    booking.id, booking.status, BookingEvent.REQUEST_CANCELLATION.value
                )

            decision = self.policy_engine.enforce(now, booking.start_time)
            event = (
                BookingEvent.CANCEL_WITH_REFUND
                if decision.outcome is CancellationOutcome.CANCEL_WITH_REFUND
                else BookingEvent.REQUEST_CANCELLATION
            )
            transition = resolve_transition(booking.status, event, booking.id)

            values: Dict[str, Any] = {"cancellation_reason": reason}
            if transition.to_status is BookingStatus.CANCELLED:
                values["cancelled_at"] = now
            self._apply_transition(booking, transition, **values)
            self._apply_ledger_effects(booking, transition.effects)
            booking = self._reload(booking.id)

        self.log_operation(
            "request_cancellation",
            booking_id=booking.id,
            outcome=decision.outcome.value,
            hours_until_start=round(decision.hours_until_start, 2),
        )
        if transition.to_status is BookingStatus.CANCELLED:
            notice: Any = BookingCancelled(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                teacher_id=booking.teacher_id,
                cancelled_by="customer",
                reason=reason,
                refunded=bool(booking.package_id),
            )
        else:
            notice = CancellationRequested(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                teacher_id=booking.teacher_id,
                start_time=booking.start_time,
                reason=reason,
            )
        self._after_commit(booking, transition.effects, notice)
        return booking

    @BaseService.measure_operation("approve_cancellation")
    def approve_cancellation(self, booking_id: str, approved_by: Optional[str] = None) -> Booking:
        """CANCELLATION_REQUESTED -> CANCELLED with refund and a customer cancellation count."""
        now = self.clock.now()

        with self.transaction():
            booking = self._get_booking(booking_id)
            transition = resolve_transition(
                booking.status, BookingEvent.APPROVE_CANCELLATION, booking.id
            )
            self._apply_transition(booking, transition, cancelled_at=now)
            self._apply_ledger_effects(booking, transition.effects)
            booking = self._reload(booking.id)

        self.log_operation("approve_cancellation", booking_id=booking.id, approved_by=approved_by)
        self._after_commit(
            booking,
            transition.effects,
            BookingCancelled(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                teacher_id=booking.teacher_id,
                cancelled_by="customer",
                reason=booking.cancellation_reason,
                refunded=bool(booking.package_id),
            ),
        )
        return booking

    @BaseService.measure_operation("reject_cancellation")
    def reject_cancellation(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        """CANCELLATION_REQUESTED -> CONFIRMED; the session stays debited."""
        with self.transaction():
            booking = self._get_booking(booking_id)
            transition = resolve_transition(
                booking.status, BookingEvent.REJECT_CANCELLATION, booking.id
            )
            self._apply_transition(booking, transition)
            booking = self._reload(booking.id)

        self.log_operation("reject_cancellation", booking_id=booking.id)
        self._after_commit(
            booking,
            transition.effects,
            CancellationRejected(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                teacher_id=booking.teacher_id,
                reason=reason,
            ),
        )
        return booking

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------

    @BaseService.measure_operation("mark_attendance")
    def mark_attendance(
        self,
        booking_id: str,
        outcome: BookingStatus | str,
        marked_by: Optional[str] = None,
    ) -> Booking:
        """
        Record the outcome of a confirmed session.

        COMPLETED and NO_SHOW keep the session debited. CANCELLED refunds the
        session and counts as a customer cancellation.

        Raises:
            ValidationException: outcome is not COMPLETED, NO_SHOW or CANCELLED
            InvalidTransitionException: booking is not CONFIRMED
        """
        try:
            status = BookingStatus(outcome)
            event = _ATTENDANCE_EVENTS[status]
        except (ValueError, KeyError):
            raise ValidationException(
                "Attendance outcome must be COMPLETED, NO_SHOW or CANCELLED",
                code="INVALID_ATTENDANCE_OUTCOME",
                details={"outcome": str(outcome)},
            )
        now = self.clock.now()

        with self.transaction():
            booking = self._get_booking(booking_id)
            transition = resolve_transition(booking.status, event, booking.id)
            values: Dict[str, Any] = {"attendance_marked_at": now}
            if transition.to_status is BookingStatus.CANCELLED:
                values["cancelled_at"] = now
            self._apply_transition(booking, transition, **values)
            self._apply_ledger_effects(booking, transition.effects)
            booking = self._reload(booking.id)

        self.log_operation(
            "mark_attendance", booking_id=booking.id, outcome=status.value, marked_by=marked_by
        )
        self._after_commit(
            booking,
            transition.effects,
            AttendanceMarked(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                teacher_id=booking.teacher_id,
                outcome=status.value,
                marked_at=now,
            ),
        )
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: str) -> Booking:
        return self._get_booking(booking_id)

    def list_bookings(
        self,
        *,
        teacher_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> list[Booking]:
        return self.booking_repository.list_bookings(
            teacher_id=teacher_id,
            customer_id=customer_id,
            status=status,
            start=start,
            end=end,
            limit=limit,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _parse_session_type(self, session_type: SessionType | str) -> SessionType:
        try:
            parsed = SessionType(session_type)
        except ValueError:
            raise ValidationException(
                f"Unknown session type: {session_type}",
                code="INVALID_SESSION_TYPE",
            )
        if parsed not in BOOKABLE_SESSION_TYPES:
            raise ValidationException(
                "Blocked time is created with block_time",
                code="INVALID_SESSION_TYPE",
            )
        return parsed

    def _build_interval(self, start_time: datetime, end_time: Optional[datetime]) -> TimeInterval:
        if end_time is None:
            return TimeInterval.from_start(start_time, self.settings.session_duration_minutes)
        return TimeInterval(start_time, end_time)

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_fresh(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    def _reload(self, booking_id: str) -> Booking:
        return self._get_booking(booking_id)

    def _get_customer(self, customer_id: str) -> Customer:
        customer = self.customer_repository.get_by_id(customer_id)
        if customer is None:
            raise NotFoundException("Customer not found", details={"customer_id": customer_id})
        return customer

    def _lock_teacher(self, teacher_id: str) -> None:
        teacher = self.teacher_repository.lock_for_scheduling(teacher_id)
        if teacher is None or not teacher.is_active:
            raise NotFoundException("Teacher not found", details={"teacher_id": teacher_id})

    def _replay(self, existing: Booking, customer_id: str) -> Booking:
        if existing.customer_id != customer_id:
            raise ValidationException(
                "Idempotency key was already used for a different customer",
                code="IDEMPOTENCY_KEY_REUSED",
            )
        logger.info(f"Returning existing booking {existing.id} for repeated idempotency key")
        return existing

    def _validate_package(
        self,
        package_id: str,
        customer: Customer,
        session_type: SessionType,
        interval: TimeInterval,
        now: datetime,
    ) -> Package:
        package = self.package_repository.get_for_update(package_id)
        if package is None:
            raise NotFoundException("Package not found", details={"package_id": package_id})
        if package.customer_id != customer.id:
            raise ValidationException(
                "Package does not belong to this customer",
                code="PACKAGE_OWNER_MISMATCH",
                details={"package_id": package_id},
            )
        if package.session_type != session_type.value:
            raise ValidationException(
                f"Package is for {package.session_type.lower()} sessions",
                code="PACKAGE_TYPE_MISMATCH",
                details={
                    "package_type": package.session_type,
                    "requested_type": session_type.value,
                },
            )

        bookings = self.booking_repository.get_package_bookings(package.id)
        ledger = package_ledger.snapshot(package, bookings, now)
        if ledger.status is not PackageStatus.ACTIVE:
            raise PackageInactiveException(package.id, ledger.status.value)
        if not (package.valid_from <= interval.start < package.valid_to):
            raise PackageInvalidPeriodException(
                package.id, package.valid_from.isoformat(), package.valid_to.isoformat()
            )
        if ledger.available <= 0:
            raise PackageDepletedException(package.id)
        return package

    def _assess(
        self,
        interval: TimeInterval,
        teacher_id: str,
        customer_id: Optional[str],
        exclude_booking_id: Optional[str] = None,
    ) -> SlotAssessment:
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

    def _check_schedule(
        self,
        teacher_id: str,
        interval: TimeInterval,
        session_type: SessionType | str,
        customer_id: Optional[str],
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        """Customer then teacher double-booking, then studio capacity."""
        self.conflict_checker.ensure_no_conflicts(
            teacher_id=teacher_id,
            interval=interval,
            customer_id=customer_id,
            exclude_booking_id=exclude_booking_id,
        )
        assessment = self._assess(interval, teacher_id, customer_id, exclude_booking_id)
        ensure_bookable(assessment, session_type)

    def _reschedule_for_confirmation(
        self, booking: Booking, overrides: BookingOverrides
    ) -> Dict[str, Any]:
        teacher_id = overrides.teacher_id or booking.teacher_id
        start = ensure_utc(overrides.start_time) if overrides.start_time else booking.start_time
        if overrides.end_time is not None:
            end = ensure_utc(overrides.end_time)
        else:
            end = start + (booking.end_time - booking.start_time)
        interval = TimeInterval(start, end)

        self._lock_teacher(teacher_id)
        if booking.package_id:
            package = self.package_repository.get_by_id(booking.package_id)
            if package is not None and not (
                package.valid_from <= interval.start < package.valid_to
            ):
                raise PackageInvalidPeriodException(
                    package.id, package.valid_from.isoformat(), package.valid_to.isoformat()
                )
        self._check_schedule(
            teacher_id,
            interval,
            booking.session_type,
            booking.customer_id,
            exclude_booking_id=booking.id,
        )
        return {"teacher_id": teacher_id, "start_time": interval.start, "end_time": interval.end}

    def _create_booking(self, **fields: Any) -> Booking:
        try:
            return self.booking_repository.create(**fields)
        except IntegrityError as exc:
            message, scope = self._resolve_integrity_conflict_message(exc)
            if scope == "idempotency":
                raise _IdempotentReplay() from exc
            logger.warning(f"Booking insert rejected by constraint ({scope}): {str(exc.orig)}")
            raise BookingConflictException(
                message, code="TEACHER_CONFLICT" if scope == "teacher" else "BOOKING_CONFLICT"
            ) from exc

    def _resolve_integrity_conflict_message(self, exc: IntegrityError) -> Tuple[str, str]:
        """Map a constraint violation onto a user-facing message and a scope."""
        constraint = None
        diag = getattr(exc.orig, "diag", None)
        if diag is not None:
            constraint = getattr(diag, "constraint_name", None)
        text = f"{constraint or ''} {str(exc.orig)}"

        if IDEMPOTENCY_UNIQUE_CONSTRAINT in text or "bookings.idempotency_key" in text:
            return GENERIC_CONFLICT_MESSAGE, "idempotency"
        if TEACHER_SLOT_UNIQUE_INDEX in text or "bookings.teacher_id" in text:
            return TEACHER_CONFLICT_MESSAGE, "teacher"
        return GENERIC_CONFLICT_MESSAGE, "generic"

    def _apply_transition(self, booking: Booking, transition: Transition, **values: Any) -> None:
        if transition.effects.clear_cancellation_reason:
            values.setdefault("cancellation_reason", None)
        rows = self.booking_repository.transition_status(
            booking.id, transition.from_status.value, transition.to_status.value, **values
        )
        if rows == 0:
            # Another request moved the booking between our read and this write.
            raise InvalidTransitionException(
                booking.id, transition.from_status.value, transition.event.value
            )
        prometheus_metrics.record_transition(
            transition.event.value, transition.from_status.value, transition.to_status.value
        )

    def _apply_ledger_effects(self, booking: Booking, effects: SideEffects) -> None:
        if effects.debit_package and booking.package_id:
            self._debit(booking.package_id)
        if effects.refund_package and booking.package_id:
            self._refund(booking.package_id)
        if effects.count_cancellation and booking.customer_id:
            self.customer_repository.increment_cancellations(booking.customer_id)

    def _debit(self, package_id: str) -> None:
        if not self.package_repository.debit_session(package_id):
            raise PackageDepletedException(package_id)
        prometheus_metrics.record_ledger_movement("debit")

    def _refund(self, package_id: str) -> None:
        if self.package_repository.refund_session(package_id):
            prometheus_metrics.record_ledger_movement("refund")
        else:
            logger.warning(f"Refund skipped for package {package_id}: counter already full")

    def _after_commit(self, booking: Booking, effects: SideEffects, notice: Any) -> None:
        """Best-effort calendar sync and notifications; failures are logged only."""
        if effects.create_calendar_event:
            self._sync_calendar_create(booking)
        if effects.delete_calendar_event:
            self._sync_calendar_delete(booking)

        if effects.notify_teacher or effects.notify_customer:
            self.event_publisher.publish(notice)

    def _sync_calendar_create(self, booking: Booking) -> None:
        try:
            event_id = self.calendar_sync.create_event(booking)
        except Exception as e:
            prometheus_metrics.record_dependency_failure("calendar")
            logger.error(f"Failed to create calendar event for booking {booking.id}: {str(e)}")
            return
        if not event_id:
            return
        try:
            self.booking_repository.update(booking.id, calendar_event_id=event_id)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to store calendar event id for booking {booking.id}: {str(e)}")

    def _sync_calendar_delete(self, booking: Booking) -> None:
        try:
            self.calendar_sync.delete_event(booking)
        except Exception as e:
            prometheus_metrics.record_dependency_failure("calendar")
            logger.error(f"Failed to delete calendar event for booking {booking.id}: {str(e)}")

