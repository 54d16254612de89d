from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from studio.core.exceptions import ValidationException
from studio.models.booking import BookingStatus, SessionType
from studio.services.availability_service import AvailabilityService
from studio.services.slot_capacity import SlotStatus

NOW = datetime(2025, 6, 2, 3, 0, tzinfo=timezone.utc)
MORNING = NOW + timedelta(days=1)


@pytest.fixture
def availability(db: Session, clock) -> AvailabilityService:
    return AvailabilityService(db, clock=clock)


def test_window_is_split_into_assessed_slots(
    availability: AvailabilityService, make_teacher, make_customer, make_booking
) -> None:
    teacher_a, teacher_b, teacher_c = make_teacher(), make_teacher(), make_teacher()
    make_booking(teacher_a, MORNING, customer=make_customer())
    make_booking(teacher_b, MORNING, customer=make_customer())
    make_booking(teacher_a, MORNING + timedelta(hours=1), customer=make_customer())
    make_booking(
        teacher_b,
        MORNING + timedelta(hours=2),
        customer=make_customer(),
        session_type=SessionType.GROUP.value,
    )

    slots = availability.get_availability(
        MORNING, MORNING + timedelta(hours=4), teacher_id=teacher_c.id
    )

    assert [s.status for s in slots] == [
        SlotStatus.BLOCKED,
        SlotStatus.PARTIAL,
        SlotStatus.BLOCKED,
        SlotStatus.AVAILABLE,
    ]
    assert slots[0].code == "CAPACITY_EXCEEDED"
    assert slots[1].allowed_types == (SessionType.PRIVATE, SessionType.DUO)
    assert slots[2].code == "GROUP_SESSION_BLOCK"
    assert len(slots[3].allowed_types) == 3


def test_cancelled_bookings_free_the_slot(
    availability: AvailabilityService, make_teacher, make_customer, make_booking
) -> None:
    make_booking(
        make_teacher(), MORNING, customer=make_customer(), status=BookingStatus.CANCELLED.value
    )

    assessment = availability.check_slot(MORNING, MORNING + timedelta(hours=1))

    assert assessment.status is SlotStatus.AVAILABLE


def test_own_booking_is_reported_for_the_customer(
    availability: AvailabilityService, make_teacher, make_customer, make_booking
) -> None:
    customer = make_customer()
    make_booking(make_teacher(), MORNING, customer=customer)

    assessment = availability.check_slot(
        MORNING, MORNING + timedelta(hours=1), teacher_id=make_teacher().id, customer_id=customer.id
    )

    assert assessment.status is SlotStatus.BLOCKED
    assert assessment.code == "CUSTOMER_CONFLICT"


def test_custom_slot_length(availability: AvailabilityService) -> None:
    slots = availability.get_availability(MORNING, MORNING + timedelta(hours=2), slot_minutes=30)

    assert len(slots) == 4
    summary = availability.summarize(slots)
    assert summary == {"total_slots": 4, "by_status": {"AVAILABLE": 4}}


def test_window_too_large(availability: AvailabilityService) -> None:
    with pytest.raises(ValidationException) as exc_info:
        availability.get_availability(MORNING, MORNING + timedelta(days=30))
    assert exc_info.value.code == "WINDOW_TOO_LARGE"


def test_slot_length_must_be_positive(availability: AvailabilityService) -> None:
    with pytest.raises(ValidationException) as exc_info:
        availability.get_availability(MORNING, MORNING + timedelta(hours=2), slot_minutes=-15)
    assert exc_info.value.code == "INVALID_SLOT_LENGTH"


def test_window_shorter_than_one_slot(availability: AvailabilityService) -> None:
    with pytest.raises(ValidationException) as exc_info:
        availability.get_availability(MORNING, MORNING + timedelta(minutes=45))
    assert exc_info.value.code == "WINDOW_TOO_SMALL"
    assert exc_info.value.details["window_minutes"] == 45
