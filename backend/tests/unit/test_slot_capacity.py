from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from studio.core.exceptions import BookingConflictException
from studio.domain.interval import TimeInterval
from studio.models.booking import Booking
from studio.services.conflict_checker import exists_overlap
from studio.services.slot_capacity import SlotStatus, assess_slot, ensure_bookable

TEN_AM = datetime(2025, 6, 10, 3, 0, tzinfo=timezone.utc)


def _booking(
    teacher_id: str,
    start: datetime,
    minutes: int = 60,
    session_type: str = "PRIVATE",
    status: str = "CONFIRMED",
    customer_id: Optional[str] = "C-other",
    booking_id: Optional[str] = None,
) -> Booking:
    return Booking(
        id=booking_id or f"{teacher_id}-{start.isoformat()}",
        teacher_id=teacher_id,
        customer_id=customer_id,
        session_type=session_type,
        status=status,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
    )


def _slot(start: datetime = TEN_AM, minutes: int = 60) -> TimeInterval:
    return TimeInterval.from_start(start, minutes)


def test_empty_studio_is_available_for_every_type() -> None:
    assessment = assess_slot([], _slot(), teacher_id="T-A")

    assert assessment.status is SlotStatus.AVAILABLE
    assert assessment.allows("GROUP")
    assert assessment.allows("PRIVATE")


def test_second_teacher_gets_partial_slot() -> None:
    bookings = [_booking("T-A", TEN_AM)]

    assessment = assess_slot(bookings, _slot(TEN_AM + timedelta(minutes=30)), teacher_id="T-B")

    assert assessment.status is SlotStatus.PARTIAL
    assert assessment.allows("PRIVATE")
    assert assessment.allows("DUO")
    assert not assessment.allows("GROUP")
    assert assessment.other_teacher_ids == ("T-A",)


def test_third_teacher_hits_the_cap_even_for_group() -> None:
    bookings = [
        _booking("T-A", TEN_AM),
        _booking("T-B", TEN_AM + timedelta(minutes=30)),
    ]

    assessment = assess_slot(bookings, _slot(), teacher_id="T-C")

    assert assessment.status is SlotStatus.BLOCKED
    assert assessment.code == "CAPACITY_EXCEEDED"
    with pytest.raises(BookingConflictException) as exc_info:
        ensure_bookable(assessment, "GROUP")
    assert exc_info.value.code == "CAPACITY_EXCEEDED"


def test_group_class_vetoes_the_slot() -> None:
    bookings = [_booking("T-A", TEN_AM, session_type="GROUP")]

    assessment = assess_slot(bookings, _slot(), teacher_id="T-B")

    assert assessment.status is SlotStatus.BLOCKED
    assert assessment.code == "GROUP_SESSION_BLOCK"
    assert assessment.allowed_types == ()


def test_group_request_in_partial_slot_is_rejected() -> None:
    bookings = [_booking("T-A", TEN_AM)]
    assessment = assess_slot(bookings, _slot(), teacher_id="T-B")

    with pytest.raises(BookingConflictException) as exc_info:
        ensure_bookable(assessment, "GROUP")
    assert exc_info.value.code == "CAPACITY_EXCEEDED"
    ensure_bookable(assessment, "DUO")


def test_blocks_do_not_count_toward_other_teachers() -> None:
    bookings = [
        _booking("T-A", TEN_AM, session_type="BLOCKED", customer_id=None),
        _booking("T-B", TEN_AM, session_type="BLOCKED", customer_id=None),
    ]

    assessment = assess_slot(bookings, _slot(), teacher_id="T-C")

    assert assessment.status is SlotStatus.AVAILABLE


def test_own_block_makes_teacher_unavailable() -> None:
    bookings = [_booking("T-A", TEN_AM, session_type="BLOCKED", customer_id=None)]

    assessment = assess_slot(bookings, _slot(), teacher_id="T-A")

    assert assessment.status is SlotStatus.BLOCKED
    assert assessment.code == "TEACHER_CONFLICT"


def test_customer_double_booking_is_blocked() -> None:
    bookings = [_booking("T-A", TEN_AM, customer_id="C-1")]

    assessment = assess_slot(bookings, _slot(), teacher_id="T-B", customer_id="C-1")

    assert assessment.status is SlotStatus.BLOCKED
    assert assessment.code == "CUSTOMER_CONFLICT"


def test_adjacent_and_terminal_bookings_are_ignored() -> None:
    bookings = [
        _booking("T-A", TEN_AM - timedelta(hours=1)),  # ends exactly at 10:00
        _booking("T-B", TEN_AM + timedelta(hours=1)),  # starts exactly at 11:00
        _booking("T-C", TEN_AM, status="CANCELLED"),
        _booking("T-D", TEN_AM, status="COMPLETED"),
    ]

    assessment = assess_slot(bookings, _slot(), teacher_id="T-E")

    assert assessment.status is SlotStatus.AVAILABLE


def test_pending_and_cancellation_requested_hold_the_slot() -> None:
    bookings = [
        _booking("T-A", TEN_AM, status="PENDING"),
        _booking("T-B", TEN_AM, status="CANCELLATION_REQUESTED"),
    ]

    assessment = assess_slot(bookings, _slot(), teacher_id="T-C")

    assert assessment.status is SlotStatus.BLOCKED


def test_excluded_booking_is_not_counted() -> None:
    bookings = [_booking("T-A", TEN_AM, booking_id="B-1")]

    assessment = assess_slot(bookings, _slot(), teacher_id="T-A", exclude_booking_id="B-1")

    assert assessment.status is SlotStatus.AVAILABLE


def test_studio_wide_view_without_teacher() -> None:
    bookings = [_booking("T-A", TEN_AM), _booking("T-B", TEN_AM)]

    assessment = assess_slot(bookings, _slot())

    assert assessment.status is SlotStatus.BLOCKED
    assert assessment.to_dict()["allowed_types"] == []


class TestExistsOverlap:
    def test_back_to_back_sessions_do_not_overlap(self) -> None:
        bookings = [_booking("T-A", TEN_AM)]

        assert not exists_overlap(bookings, _slot(TEN_AM + timedelta(hours=1)))
        assert not exists_overlap(bookings, _slot(TEN_AM - timedelta(hours=1)))
        assert exists_overlap(bookings, _slot(TEN_AM + timedelta(minutes=59)))

    def test_terminal_bookings_are_ignored(self) -> None:
        bookings = [
            _booking("T-A", TEN_AM, status="CANCELLED"),
            _booking("T-B", TEN_AM, status="COMPLETED"),
        ]

        assert not exists_overlap(bookings, _slot())

    def test_predicate_narrows_the_match(self) -> None:
        bookings = [_booking("T-A", TEN_AM, customer_id="C-1")]

        assert exists_overlap(bookings, _slot(), lambda b: b.customer_id == "C-1")
        assert not exists_overlap(bookings, _slot(), lambda b: b.teacher_id == "T-B")
