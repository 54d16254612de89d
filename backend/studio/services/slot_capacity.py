"""
Studio-wide slot capacity rules.

Given every active booking overlapping a candidate interval, decide whether
the interval is AVAILABLE (any session type), PARTIAL (private or duo only)
or BLOCKED. Rules are applied in order:

1. A group class by any teacher vetoes the slot.
2. Other teachers already teaching (time blocks excluded) at the cap: blocked.
3. The chosen teacher already has something in the slot, including a block.
4. The customer already holds a booking in the slot.
5. Any other teacher teaching: group not allowed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from studio.core.constants import (
    CAPACITY_EXCEEDED_MESSAGE,
    CUSTOMER_CONFLICT_MESSAGE,
    GROUP_NOT_ALLOWED_MESSAGE,
    GROUP_SESSION_BLOCK_MESSAGE,
    TEACHER_CONFLICT_MESSAGE,
)
from studio.core.exceptions import BookingConflictException
from studio.domain.interval import TimeInterval
from studio.models.booking import BOOKABLE_SESSION_TYPES, Booking, SessionType

from .conflict_checker import exists_overlap, find_overlaps


class SlotStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    PARTIAL = "PARTIAL"
    BLOCKED = "BLOCKED"


ALL_TYPES: Tuple[SessionType, ...] = BOOKABLE_SESSION_TYPES
SHARED_TYPES: Tuple[SessionType, ...] = (SessionType.PRIVATE, SessionType.DUO)


@dataclass(frozen=True)
class SlotAssessment:
    interval: TimeInterval
    status: SlotStatus
    allowed_types: Tuple[SessionType, ...] = ()
    reason: Optional[str] = None
    code: Optional[str] = None
    other_teacher_ids: Tuple[str, ...] = field(default_factory=tuple)

    def allows(self, session_type: SessionType | str) -> bool:
        return SessionType(session_type) in self.allowed_types

    def to_dict(self) -> dict[str, object]:
        return {
            "interval": self.interval.to_dict(),
            "status": self.status.value,
            "allowed_types": [t.value for t in self.allowed_types],
            "reason": self.reason,
        }


def _blocked(
    interval: TimeInterval, reason: str, code: str, others: Tuple[str, ...] = ()
) -> SlotAssessment:
    return SlotAssessment(
        interval=interval,
        status=SlotStatus.BLOCKED,
        allowed_types=(),
        reason=reason,
        code=code,
        other_teacher_ids=others,
    )


def assess_slot(
    bookings: Iterable[Booking],
    interval: TimeInterval,
    *,
    teacher_id: Optional[str] = None,
    customer_id: Optional[str] = None,
    max_teachers: int = 2,
    exclude_booking_id: Optional[str] = None,
) -> SlotAssessment:
    """Evaluate ``interval`` against the active bookings overlapping it."""
    overlapping: List[Booking] = find_overlaps(
        bookings,
        interval,
        (lambda b: b.id != exclude_booking_id) if exclude_booking_id else None,
    )

    if any(b.session_type == SessionType.GROUP.value for b in overlapping):
        return _blocked(interval, GROUP_SESSION_BLOCK_MESSAGE, "GROUP_SESSION_BLOCK")

    others = tuple(
        sorted(
            {
                b.teacher_id
                for b in overlapping
                if b.session_type != SessionType.BLOCKED.value and b.teacher_id != teacher_id
            }
        )
    )
    if len(others) >= max_teachers:
        return _blocked(interval, CAPACITY_EXCEEDED_MESSAGE, "CAPACITY_EXCEEDED", others)

    if teacher_id and exists_overlap(overlapping, interval, lambda b: b.teacher_id == teacher_id):
        return _blocked(interval, TEACHER_CONFLICT_MESSAGE, "TEACHER_CONFLICT", others)

    if customer_id and exists_overlap(
        overlapping, interval, lambda b: b.customer_id == customer_id
    ):
        return _blocked(interval, CUSTOMER_CONFLICT_MESSAGE, "CUSTOMER_CONFLICT", others)

    if others:
        return SlotAssessment(
            interval=interval,
            status=SlotStatus.PARTIAL,
            allowed_types=SHARED_TYPES,
            reason=GROUP_NOT_ALLOWED_MESSAGE,
            other_teacher_ids=others,
        )
    return SlotAssessment(interval=interval, status=SlotStatus.AVAILABLE, allowed_types=ALL_TYPES)


def ensure_bookable(assessment: SlotAssessment, session_type: SessionType | str) -> None:
    """
    Raise unless ``session_type`` fits the assessed slot.

    Raises:
        BookingConflictException: with the assessment's reason and code
    """
    if assessment.status is SlotStatus.BLOCKED:
        raise BookingConflictException(
            assessment.reason,
            code=assessment.code or "CAPACITY_EXCEEDED",
            details={
                "interval": assessment.interval.to_dict(),
                "other_teacher_ids": list(assessment.other_teacher_ids),
            },
        )
    if not assessment.allows(session_type):
        raise BookingConflictException(
            GROUP_NOT_ALLOWED_MESSAGE,
            code="CAPACITY_EXCEEDED",
            details={
                "interval": assessment.interval.to_dict(),
                "allowed_types": [t.value for t in assessment.allowed_types],
                "requested_type": SessionType(session_type).value,
            },
        )
