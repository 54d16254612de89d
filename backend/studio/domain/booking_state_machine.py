"""Booking status transitions and the side effects each one carries."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from studio.core.exceptions import InvalidTransitionException
from studio.models.booking import BookingStatus


class BookingEvent(str, Enum):
    CONFIRM = "CONFIRM"
    REJECT = "REJECT"
    MARK_COMPLETE = "MARK_COMPLETE"
    MARK_NO_SHOW = "MARK_NO_SHOW"
    MARK_CANCELLED = "MARK_CANCELLED"
    CANCEL_WITH_REFUND = "CANCEL_WITH_REFUND"  # customer, outside the approval window
    REQUEST_CANCELLATION = "REQUEST_CANCELLATION"  # customer, inside the approval window
    APPROVE_CANCELLATION = "APPROVE_CANCELLATION"
    REJECT_CANCELLATION = "REJECT_CANCELLATION"
    DIRECT_CANCEL = "DIRECT_CANCEL"  # teacher/admin
    AUTO_COMPLETE = "AUTO_COMPLETE"  # sweep


@dataclass(frozen=True)
class SideEffects:
    debit_package: bool = False
    refund_package: bool = False
    count_cancellation: bool = False
    clear_cancellation_reason: bool = False
    create_calendar_event: bool = False
    delete_calendar_event: bool = False
    notify_teacher: bool = False
    notify_customer: bool = False


@dataclass(frozen=True)
class Transition:
    from_status: BookingStatus
    event: BookingEvent
    to_status: BookingStatus
    effects: SideEffects = SideEffects()


_S = BookingStatus
_E = BookingEvent

_REFUND_AND_COUNT = SideEffects(
    refund_package=True,
    count_cancellation=True,
    delete_calendar_event=True,
    notify_teacher=True,
    notify_customer=True,
)

_TRANSITIONS: Dict[Tuple[BookingStatus, BookingEvent], Tuple[BookingStatus, SideEffects]] = {
    (_S.PENDING, _E.CONFIRM): (
        _S.CONFIRMED,
        SideEffects(debit_package=True, create_calendar_event=True, notify_customer=True),
    ),
    (_S.PENDING, _E.REJECT): (_S.CANCELLED, SideEffects(notify_customer=True)),
    (_S.CONFIRMED, _E.MARK_COMPLETE): (_S.COMPLETED, SideEffects()),
    (_S.CONFIRMED, _E.AUTO_COMPLETE): (_S.COMPLETED, SideEffects()),
    # Session stays debited; no-shows never touch the cancellation counter.
    (_S.CONFIRMED, _E.MARK_NO_SHOW): (_S.NO_SHOW, SideEffects()),
    (_S.CONFIRMED, _E.MARK_CANCELLED): (_S.CANCELLED, _REFUND_AND_COUNT),
    (_S.CONFIRMED, _E.CANCEL_WITH_REFUND): (_S.CANCELLED, _REFUND_AND_COUNT),
    (_S.CONFIRMED, _E.REQUEST_CANCELLATION): (
        _S.CANCELLATION_REQUESTED,
        SideEffects(notify_teacher=True),
    ),
    (_S.CANCELLATION_REQUESTED, _E.APPROVE_CANCELLATION): (_S.CANCELLED, _REFUND_AND_COUNT),
    (_S.CANCELLATION_REQUESTED, _E.REJECT_CANCELLATION): (
        _S.CONFIRMED,
        SideEffects(clear_cancellation_reason=True, notify_customer=True),
    ),
    (_S.PENDING, _E.DIRECT_CANCEL): (_S.CANCELLED, SideEffects(notify_customer=True)),
    (_S.CONFIRMED, _E.DIRECT_CANCEL): (
        _S.CANCELLED,
        SideEffects(refund_package=True, delete_calendar_event=True, notify_customer=True),
    ),
}


def resolve_transition(
    current_status: str,
    event: BookingEvent,
    booking_id: Optional[str] = None,
) -> Transition:
    """
    Look up the transition for ``event`` from ``current_status``.

    Raises:
        InvalidTransitionException: terminal state or pair not in the table
    """
    try:
        status = BookingStatus(current_status)
    except ValueError:
        raise InvalidTransitionException(booking_id, str(current_status), event.value)

    entry = _TRANSITIONS.get((status, event))
    if entry is None:
        raise InvalidTransitionException(booking_id, status.value, event.value)
    to_status, effects = entry
    return Transition(from_status=status, event=event, to_status=to_status, effects=effects)


def can_transition(current_status: str, event: BookingEvent) -> bool:
    try:
        return (BookingStatus(current_status), event) in _TRANSITIONS
    except ValueError:
        return False


def allowed_events(current_status: str) -> list[BookingEvent]:
    return [event for (status, event) in _TRANSITIONS if status.value == current_status]
