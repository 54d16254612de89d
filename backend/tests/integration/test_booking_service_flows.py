"""
BookingService lifecycle tests against SQLite.

Covers request -> confirm -> cancel/attendance flows and the package
counter movements each transition makes.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session

from studio.core.exceptions import (
    BookingConflictException,
    CancellationPolicyException,
    InvalidTransitionException,
    PackageDepletedException,
    ValidationException,
)
from studio.models.booking import Booking, BookingStatus
from studio.services.booking_service import BookingOverrides, BookingService
from studio.services.package_service import PackageService

NOW = datetime(2025, 6, 2, 3, 0, tzinfo=timezone.utc)


def _day(days: int, hour_utc: int = 3):
    """Start time ``days`` from NOW at ``hour_utc``:00 UTC."""
    return (NOW + timedelta(days=days)).replace(hour=hour_utc, minute=0)


@pytest.fixture
def studio(make_teacher, make_customer, make_package):
    teacher = make_teacher("Teacher A")
    customer = make_customer("Nok", preferred_teacher=teacher)
    package = make_package(customer, total=10)
    return SimpleNamespace(teacher=teacher, customer=customer, package=package)


class TestRequestAndConfirm:
    def test_three_confirmed_sessions_update_counter_and_ledger(
        self, db: Session, booking_service: BookingService, clock, studio
    ) -> None:
        for days in (2, 3, 4):
            booking = booking_service.request_booking(
                customer_id=studio.customer.id,
                session_type="PRIVATE",
                start_time=_day(days),
                teacher_id=studio.teacher.id,
                package_id=studio.package.id,
            )
            assert booking.status == BookingStatus.PENDING.value
            booking_service.confirm_booking(booking.id)

        db.refresh(studio.package)
        assert studio.package.remaining_sessions == 7

        ledger = PackageService(db, clock=clock).get_ledger(studio.package.id)
        assert ledger["debited"] == 0
        assert ledger["upcoming"] == 3
        assert ledger["available"] == 7

    def test_request_defaults_to_preferred_teacher_and_session_length(
        self, booking_service: BookingService, studio
    ) -> None:
        booking = booking_service.request_booking(
            customer_id=studio.customer.id,
            session_type="PRIVATE",
            start_time=_day(2),
        )

        assert booking.teacher_id == studio.teacher.id
        assert booking.end_time - booking.start_time == timedelta(minutes=60)
        assert booking.is_requested_by_customer is True

    def test_confirm_syncs_calendar_and_notifies(
        self, booking_service: BookingService, calendar, notifier, studio
    ) -> None:
        booking = booking_service.request_booking(
            customer_id=studio.customer.id, session_type="PRIVATE", start_time=_day(2)
        )
        confirmed = booking_service.confirm_booking(booking.id, confirmed_by=studio.teacher.id)

        assert confirmed.status == BookingStatus.CONFIRMED.value
        assert confirmed.confirmed_at == NOW
        assert calendar.created == [booking.id]
        assert booking_service.get_booking(booking.id).calendar_event_id == f"evt-{booking.id}"
        assert notifier.events() == ["BookingRequested", "BookingConfirmed"]

    def test_calendar_failure_does_not_fail_confirmation(
        self, db: Session, booking_service: BookingService, calendar, studio
    ) -> None:
        calendar.fail = True
        booking = booking_service.request_booking(
            customer_id=studio.customer.id,
            session_type="PRIVATE",
            start_time=_day(2),
            package_id=studio.package.id,
        )

        confirmed = booking_service.confirm_booking(booking.id)

        assert confirmed.status == BookingStatus.CONFIRMED.value
        assert confirmed.calendar_event_id is None
        db.refresh(studio.package)
        assert studio.package.remaining_sessions == 9

    def test_second_confirm_is_rejected_and_debits_once(
        self, db: Session, booking_service: BookingService, studio
    ) -> None:
        booking = booking_service.request_booking(
            customer_id=studio.customer.id,
            session_type="PRIVATE",
            start_time=_day(2),
            package_id=studio.package.id,
        )
        booking_service.confirm_booking(booking.id)

        with pytest.raises(InvalidTransitionException) as exc_info:
            booking_service.confirm_booking(booking.id)

        assert exc_info.value.message == "Booking has already been processed"
        db.refresh(studio.package)
        assert studio.package.remaining_sessions == 9

    def test_racing_confirm_loses_compare_and_set(
        self, db: Session, booking_service: BookingService, clock, notifier, calendar, studio,
        monkeypatch,
    ) -> None:
        booking = booking_service.request_booking(
            customer_id=studio.customer.id,
            session_type="PRIVATE",
            start_time=_day(2),
            package_id=studio.package.id,
        )
        # Snapshot of the row as the losing request read it: still PENDING.
        stale = SimpleNamespace(
            id=booking.id,
            status=BookingStatus.PENDING.value,
            teacher_id=booking.teacher_id,
            customer_id=booking.customer_id,
            package_id=booking.package_id,
            start_time=booking.start_time,
            end_time=booking.end_time,
        )
        loser = BookingService(db, clock=clock, calendar_sync=calendar, notifier=notifier)

        booking_service.confirm_booking(booking.id)
        monkeypatch.setattr(loser.booking_repository, "get_fresh", lambda _id: stale)

        with pytest.raises(InvalidTransitionException):
            loser.confirm_booking(booking.id)

        db.refresh(studio.package)
        assert studio.package.remaining_sessions == 9
        assert booking_service.get_booking(booking.id).status == BookingStatus.CONFIRMED.value

    def test_confirm_fails_when_counter_is_exhausted(
        self, db: Session, booking_service: BookingService, make_package, make_booking, studio
    ) -> None:
        empty = make_package(studio.customer, total=1, remaining=0)
        booking = make_booking(
            studio.teacher,
            _day(2),
            customer=studio.customer,
            status=BookingStatus.PENDING.value,
            package=empty,
        )

        with pytest.raises(PackageDepletedException):
            booking_service.confirm_booking(booking.id)

        assert booking_service.get_booking(booking.id).status == BookingStatus.PENDING.value

    def test_confirm_with_overrides_moves_the_session(
        self, booking_service: BookingService, make_teacher, studio
    ) -> None:
        other_teacher = make_teacher("Teacher B")
        booking = booking_service.request_booking(
            customer_id=studio.customer.id, session_type="PRIVATE", start_time=_day(2)
        )

        confirmed = booking_service.confirm_booking(
            booking.id,
            overrides=BookingOverrides(
                teacher_id=other_teacher.id, start_time=_day(2, hour_utc=5), notes="Moved"
            ),
        )

        assert confirmed.teacher_id == other_teacher.id
        assert confirmed.start_time == _day(2, hour_utc=5)
        assert confirmed.end_time == _day(2, hour_utc=6)
        assert confirmed.notes == "Moved"

    def test_confirm_override_into_busy_slot_conflicts(
        self, booking_service: BookingService, make_teacher, make_customer, make_booking, studio
    ) -> None:
        busy_teacher = make_teacher("Teacher B")
        make_booking(busy_teacher, _day(2, hour_utc=5), customer=make_customer())
        booking = booking_service.request_booking(
            customer_id=studio.customer.id, session_type="PRIVATE", start_time=_day(2)
        )

        with pytest.raises(BookingConflictException) as exc_info:
            booking_service.confirm_booking(
                booking.id,
                overrides=BookingOverrides(
                    teacher_id=busy_teacher.id, start_time=_day(2, hour_utc=5)
                ),
            )

        assert exc_info.value.code == "TEACHER_CONFLICT"
        assert booking_service.get_booking(booking.id).status == BookingStatus.PENDING.value

    def test_reject_booking(self, booking_service: BookingService, notifier, studio) -> None:
        booking = booking_service.request_booking(
            customer_id=studio.customer.id,
            session_type="PRIVATE",
            start_time=_day(2),
            package_id=studio.package.id,
        )

        rejected = booking_service.reject_booking(booking.id, reason="Teacher unavailable")

        assert rejected.status == BookingStatus.CANCELLED.value
        assert rejected.cancellation_reason == "Teacher unavailable"
        assert "BookingCancelled" in notifier.events()


class TestCapacity:
    def test_two_teachers_share_then_third_is_capped(
        self, booking_service: BookingService, make_teacher, make_customer, make_booking
    ) -> None:
        teacher_a, teacher_b, teacher_c = (make_teacher(n) for n in ("A", "B", "C"))
        ten_am = _day(2)
        make_booking(teacher_a, ten_am, customer=make_customer())

        partial = booking_service.request_booking(
            customer_id=make_customer().id,
            session_type="PRIVATE",
            start_time=ten_am + timedelta(minutes=30),
            teacher_id=teacher_b.id,
        )
        assert partial.status == BookingStatus.PENDING.value

        with pytest.raises(BookingConflictException) as exc_info:
            booking_service.request_booking(
                customer_id=make_customer().id,
                session_type="GROUP",
                start_time=ten_am,
                teacher_id=teacher_c.id,
            )
        assert exc_info.value.code == "CAPACITY_EXCEEDED"

    def test_group_not_allowed_beside_another_teacher(
        self, booking_service: BookingService, make_teacher, make_customer, make_booking
    ) -> None:
        teacher_a, teacher_b = make_teacher("A"), make_teacher("B")
        make_booking(teacher_a, _day(2), customer=make_customer())

        with pytest.raises(BookingConflictException) as exc_info:
            booking_service.request_booking(
                customer_id=make_customer().id,
                session_type="GROUP",
                start_time=_day(2),
                teacher_id=teacher_b.id,
            )
        assert exc_info.value.code == "CAPACITY_EXCEEDED"

    def test_customer_cannot_double_book(
        self, booking_service: BookingService, make_teacher, make_booking, studio
    ) -> None:
        make_booking(make_teacher("B"), _day(2), customer=studio.customer)

        with pytest.raises(BookingConflictException) as exc_info:
            booking_service.request_booking(
                customer_id=studio.customer.id, session_type="PRIVATE", start_time=_day(2)
            )
        assert exc_info.value.code == "CUSTOMER_CONFLICT"

    def test_storage_index_backs_up_teacher_check(
        self, booking_service: BookingService, make_customer, make_booking, studio, monkeypatch
    ) -> None:
        make_booking(studio.teacher, _day(2), customer=make_customer())
        monkeypatch.setattr(booking_service, "_check_schedule", lambda *args, **kwargs: None)

        with pytest.raises(BookingConflictException) as exc_info:
            booking_service.request_booking(
                customer_id=studio.customer.id, session_type="PRIVATE", start_time=_day(2)
            )
        assert exc_info.value.code == "TEACHER_CONFLICT"


class TestCancellation:
    @pytest.fixture
    def confirmed(self, make_booking, db: Session, studio):
        def _make(hours_ahead: float) -> Booking:
            booking = make_booking(
                studio.teacher,
                NOW + timedelta(hours=hours_ahead),
                customer=studio.customer,
                package=studio.package,
            )
            studio.package.remaining_sessions = 9
            db.commit()
            return booking

        return _make

    def test_too_late_to_cancel(self, booking_service: BookingService, confirmed, db, studio):
        booking = confirmed(5)

        with pytest.raises(CancellationPolicyException) as exc_info:
            booking_service.request_cancellation(booking.id, reason="Sick")

        assert "cannot cancel within 6 hours" in exc_info.value.message.lower()
        assert booking_service.get_booking(booking.id).status == BookingStatus.CONFIRMED.value
        db.refresh(studio.package)
        assert studio.package.remaining_sessions == 9

    def test_late_cancellation_needs_approval(
        self, booking_service: BookingService, confirmed, notifier, db: Session, studio
    ) -> None:
        booking = confirmed(8)

        requested = booking_service.request_cancellation(booking.id, reason="Traffic")
        assert requested.status == BookingStatus.CANCELLATION_REQUESTED.value
        assert "CancellationRequested" in notifier.events()
        db.refresh(studio.package)
        assert studio.package.remaining_sessions == 9

        approved = booking_service.approve_cancellation(booking.id)
        assert approved.status == BookingStatus.CANCELLED.value
        assert approved.cancelled_at == NOW
        db.refresh(studio.package)
        db.refresh(studio.customer)
        assert studio.package.remaining_sessions == 10
        assert studio.customer.total_cancellations == 1

    def test_rejected_cancellation_keeps_the_session(
        self, booking_service: BookingService, confirmed, db: Session, studio
    ) -> None:
        booking = confirmed(8)
        booking_service.request_cancellation(booking.id, reason="Traffic")

        kept = booking_service.reject_cancellation(booking.id, reason="Studio policy")

        assert kept.status == BookingStatus.CONFIRMED.value
        assert kept.cancellation_reason is None
        db.refresh(studio.package)
        db.refresh(studio.customer)
        assert studio.package.remaining_sessions == 9
        assert studio.customer.total_cancellations == 0

    def test_early_cancellation_refunds_immediately(
        self, booking_service: BookingService, calendar, db: Session, studio
    ) -> None:
        booking = booking_service.request_booking(
            customer_id=studio.customer.id,
            session_type="PRIVATE",
            start_time=_day(3),
            package_id=studio.package.id,
        )
        booking_service.confirm_booking(booking.id)
        db.refresh(studio.package)
        assert studio.package.remaining_sessions == 9

        cancelled = booking_service.request_cancellation(booking.id, reason="Travel")

        assert cancelled.status == BookingStatus.CANCELLED.value
        assert calendar.deleted == [booking.id]
        db.refresh(studio.package)
        db.refresh(studio.customer)
        assert studio.package.remaining_sessions == 10
        assert studio.customer.total_cancellations == 1

    def test_cancellation_request_requires_confirmed_booking(
        self, booking_service: BookingService, studio
    ) -> None:
        booking = booking_service.request_booking(
            customer_id=studio.customer.id, session_type="PRIVATE", start_time=_day(3)
        )

        with pytest.raises(InvalidTransitionException):
            booking_service.request_cancellation(booking.id)

    def test_direct_cancel_refunds_without_counting(
        self, booking_service: BookingService, confirmed, db: Session, studio
    ) -> None:
        booking = confirmed(3)

        cancelled = booking_service.cancel_booking(booking.id, reason="Teacher ill")

        assert cancelled.status == BookingStatus.CANCELLED.value
        db.refresh(studio.package)
        db.refresh(studio.customer)
        assert studio.package.remaining_sessions == 10
        assert studio.customer.total_cancellations == 0


class TestAttendance:
    @pytest.fixture
    def session_today(self, make_booking, db: Session, studio) -> Booking:
        booking = make_booking(
            studio.teacher,
            NOW - timedelta(hours=2),
            customer=studio.customer,
            package=studio.package,
        )
        studio.package.remaining_sessions = 9
        db.commit()
        return booking

    def test_completed_keeps_debit(
        self, booking_service: BookingService, session_today, db: Session, studio
    ) -> None:
        marked = booking_service.mark_attendance(session_today.id, "COMPLETED")

        assert marked.status == BookingStatus.COMPLETED.value
        assert marked.attendance_marked_at == NOW
        db.refresh(studio.package)
        assert studio.package.remaining_sessions == 9

    def test_no_show_is_not_a_cancellation(
        self, booking_service: BookingService, session_today, db: Session, studio
    ) -> None:
        booking_service.mark_attendance(session_today.id, "NO_SHOW")

        db.refresh(studio.package)
        db.refresh(studio.customer)
        assert studio.package.remaining_sessions == 9
        assert studio.customer.total_cancellations == 0

    def test_cancelled_refunds_and_counts(
        self, booking_service: BookingService, session_today, db: Session, studio
    ) -> None:
        booking_service.mark_attendance(session_today.id, "CANCELLED")

        db.refresh(studio.package)
        db.refresh(studio.customer)
        assert studio.package.remaining_sessions == 10
        assert studio.customer.total_cancellations == 1

    def test_terminal_booking_cannot_be_marked_again(
        self, booking_service: BookingService, session_today
    ) -> None:
        booking_service.mark_attendance(session_today.id, "COMPLETED")

        with pytest.raises(InvalidTransitionException):
            booking_service.mark_attendance(session_today.id, "NO_SHOW")

    def test_unknown_outcome(self, booking_service: BookingService, session_today) -> None:
        with pytest.raises(ValidationException) as exc_info:
            booking_service.mark_attendance(session_today.id, "PENDING")
        assert exc_info.value.code == "INVALID_ATTENDANCE_OUTCOME"


def test_confirm_then_early_cancel_round_trip(
    db: Session, booking_service: BookingService, studio
) -> None:
    before = studio.package.remaining_sessions
    booking = booking_service.request_booking(
        customer_id=studio.customer.id,
        session_type="PRIVATE",
        start_time=_day(5),
        package_id=studio.package.id,
    )
    booking_service.confirm_booking(booking.id)
    booking_service.request_cancellation(booking.id)

    db.refresh(studio.package)
    assert studio.package.remaining_sessions == before
