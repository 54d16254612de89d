# backend/studio/schemas/availability.py
"""Availability query results."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from ..services.slot_capacity import SlotAssessment
from ._strict_base import StrictModel


class SlotResponse(StrictModel):
    start_time: datetime
    end_time: datetime
    status: str = Field(..., description="AVAILABLE, PARTIAL or BLOCKED")
    allowed_types: list[str]
    reason: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def from_assessment(cls, assessment: SlotAssessment) -> "SlotResponse":
        return cls(
            start_time=assessment.interval.start,
            end_time=assessment.interval.end,
            status=assessment.status.value,
            allowed_types=[t.value for t in assessment.allowed_types],
            reason=assessment.reason,
            code=assessment.code,
        )


class AvailabilityResponse(StrictModel):
    start_time: datetime
    end_time: datetime
    teacher_id: Optional[str] = None
    slot_minutes: int
    slots: list[SlotResponse]
