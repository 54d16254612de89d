from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError

from studio.core.constants import GENERIC_CONFLICT_MESSAGE, TEACHER_CONFLICT_MESSAGE
from studio.services.booking_service import BookingService


class _FakeDiag:
    def __init__(self, constraint_name: str) -> None:
        self.constraint_name = constraint_name


class _FakeOrig:
    def __init__(self, constraint_name: Optional[str], text: str = "") -> None:
        self.diag = _FakeDiag(constraint_name) if constraint_name else None
        self._text = text

    def __str__(self) -> str:
        return self._text


def _make_error(constraint: Optional[str], text: str = "") -> IntegrityError:
    return IntegrityError("stmt", params=None, orig=_FakeOrig(constraint, text=text))


def test_teacher_slot_index_maps_to_teacher_conflict() -> None:
    service = BookingService.__new__(BookingService)
    message, scope = service._resolve_integrity_conflict_message(
        _make_error("uq_bookings_teacher_active_slot")
    )
    assert message == TEACHER_CONFLICT_MESSAGE
    assert scope == "teacher"


def test_sqlite_unique_text_fallback() -> None:
    service = BookingService.__new__(BookingService)
    error = _make_error(
        None,
        text=(
            "UNIQUE constraint failed: "
            "bookings.teacher_id, bookings.start_time, bookings.end_time"
        ),
    )
    message, scope = service._resolve_integrity_conflict_message(error)
    assert message == TEACHER_CONFLICT_MESSAGE
    assert scope == "teacher"


def test_idempotency_key_collision() -> None:
    service = BookingService.__new__(BookingService)
    _, scope = service._resolve_integrity_conflict_message(
        _make_error(None, text="UNIQUE constraint failed: bookings.idempotency_key")
    )
    assert scope == "idempotency"


def test_unknown_constraint_is_generic() -> None:
    service = BookingService.__new__(BookingService)
    message, scope = service._resolve_integrity_conflict_message(
        _make_error(None, text="some other constraint")
    )
    assert message == GENERIC_CONFLICT_MESSAGE
    assert scope == "generic"
