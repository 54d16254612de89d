# backend/studio/schemas/__init__.py
"""Pydantic schemas for the studio booking API."""

from .availability import AvailabilityResponse, SlotResponse
from .booking import (
    AttendanceUpdate,
    BlockCreate,
    BookingConfirm,
    BookingCreate,
    BookingListResponse,
    BookingReason,
    BookingResponse,
    ManualSessionCreate,
)
from .package import PackageLedgerResponse, PackageReconcileResponse

__all__ = [
    "AttendanceUpdate",
    "AvailabilityResponse",
    "BlockCreate",
    "BookingConfirm",
    "BookingCreate",
    "BookingListResponse",
    "BookingReason",
    "BookingResponse",
    "ManualSessionCreate",
    "PackageLedgerResponse",
    "PackageReconcileResponse",
    "SlotResponse",
]
