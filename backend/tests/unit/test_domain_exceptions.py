from __future__ import annotations

import pytest

from studio.core.exceptions import (
    BookingConflictException,
    CancellationPolicyException,
    DomainException,
    InvalidTransitionException,
    LedgerIntegrityException,
    NotFoundException,
    OutsideAdvanceWindowException,
    PackageDepletedException,
    PackageInactiveException,
    PackageInvalidPeriodException,
    ValidationException,
)


@pytest.mark.parametrize(
    "exc,status_code,code",
    [
        (ValidationException("bad"), 400, "ValidationException"),
        (NotFoundException("missing"), 404, "NotFoundException"),
        (BookingConflictException(), 409, "BOOKING_CONFLICT"),
        (InvalidTransitionException("b1", "CANCELLED", "CONFIRM"), 409, "INVALID_TRANSITION"),
        (CancellationPolicyException("late", 6, 5.0), 422, "CANCELLATION_WINDOW"),
        (OutsideAdvanceWindowException(24, 3.5), 422, "OUTSIDE_ADVANCE_WINDOW"),
        (PackageInactiveException("p1", "EXPIRED"), 422, "PACKAGE_INACTIVE"),
        (PackageInvalidPeriodException("p1", "a", "b"), 422, "PACKAGE_INVALID_PERIOD"),
        (PackageDepletedException("p1"), 422, "PACKAGE_DEPLETED"),
        (LedgerIntegrityException("p1", {"available": -1}), 500, "LEDGER_INTEGRITY"),
    ],
)
def test_http_mapping(exc: DomainException, status_code: int, code: str) -> None:
    http_exc = exc.to_http_exception()

    assert http_exc.status_code == status_code
    assert http_exc.detail["code"] == code
    assert http_exc.detail["message"] == exc.message


def test_conflict_defaults_to_generic_message() -> None:
    exc = BookingConflictException(code="TEACHER_CONFLICT")

    assert exc.message == "This time slot conflicts with an existing booking"
    assert exc.details == {}
