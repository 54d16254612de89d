# backend/studio/schemas/booking.py
"""
Booking request and response schemas.

Times cross the API as ISO-8601 datetimes; naive values are read as UTC.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import ConfigDict, Field, model_validator

from ..models.booking import BookingStatus, SessionType
from ._strict_base import StrictModel, StrictRequestModel

BookableType = Literal["PRIVATE", "DUO", "GROUP"]
AttendanceOutcome = Literal["COMPLETED", "NO_SHOW", "CANCELLED"]


def _check_time_order(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and end <= start:
        raise ValueError("end_time must be after start_time")


class BookingCreate(StrictRequestModel):
    """
    Customer booking request.

    ``teacher_id`` falls back to the customer's preferred teacher and
    ``end_time`` to the configured session length.
    """

    customer_id: str = Field(..., min_length=1, description="Customer making the request")
    teacher_id: Optional[str] = Field(None, description="Teacher to book")
    session_type: BookableType = Field(..., description="PRIVATE, DUO or GROUP")
    start_time: datetime = Field(..., description="Session start")
    end_time: Optional[datetime] = Field(None, description="Session end")
    package_id: Optional[str] = Field(None, description="Package to draw the session from")
    notes: Optional[str] = Field(None, max_length=1000)
    idempotency_key: Optional[str] = Field(
        None, max_length=64, description="Client key; repeats return the original booking"
    )

    @model_validator(mode="after")
    def _check_order(self) -> "BookingCreate":
        _check_time_order(self.start_time, self.end_time)
        return self


class ManualSessionCreate(StrictRequestModel):
    """Teacher-entered session, confirmed on creation."""

    customer_id: str = Field(..., min_length=1)
    session_type: BookableType
    start_time: datetime
    end_time: Optional[datetime] = None
    package_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _check_order(self) -> "ManualSessionCreate":
        _check_time_order(self.start_time, self.end_time)
        return self


class BookingConfirm(StrictRequestModel):
    """Optional overrides applied while confirming."""

    teacher_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=1000)
    confirmed_by: Optional[str] = None

    @model_validator(mode="after")
    def _check_order(self) -> "BookingConfirm":
        _check_time_order(self.start_time, self.end_time)
        return self


class BookingReason(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500)


class AttendanceUpdate(StrictRequestModel):
    outcome: AttendanceOutcome
    marked_by: Optional[str] = None


class BlockCreate(StrictRequestModel):
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def _check_order(self) -> "BlockCreate":
        _check_time_order(self.start_time, self.end_time)
        return self


class BookingResponse(StrictModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: str
    customer_id: Optional[str]
    teacher_id: str
    package_id: Optional[str]
    session_type: SessionType
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    is_requested_by_customer: bool = False
    auto_confirmed: bool = False
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    attendance_marked_at: Optional[datetime] = None
    calendar_event_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: Any) -> "BookingResponse":
        return cls.model_validate(booking)


class BookingListResponse(StrictModel):
    items: list[BookingResponse]
    total: int
