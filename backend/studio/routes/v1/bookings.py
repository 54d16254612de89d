# backend/studio/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    GET - List bookings with filters
    POST - Customer booking request (PENDING)
    GET /{booking_id} - Booking details
    POST /{booking_id}/confirm - Teacher confirms, optionally with overrides
    POST /{booking_id}/reject - Teacher rejects a pending request
    POST /{booking_id}/cancel - Teacher/admin direct cancel
    POST /{booking_id}/cancellation-request - Customer cancellation
    POST /{booking_id}/cancellation/approve - Teacher approves a late cancellation
    POST /{booking_id}/cancellation/reject - Teacher keeps the booking
    POST /{booking_id}/attendance - Mark completed, no-show or cancelled
"""

import asyncio
from datetime import datetime
import logging
from typing import Any, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.params import Path

from ...api.dependencies import get_booking_service
from ...core.exceptions import DomainException
from ...models.booking import BookingStatus
from ...schemas.booking import (
    AttendanceUpdate,
    BookingConfirm,
    BookingCreate,
    BookingListResponse,
    BookingReason,
    BookingResponse,
)
from ...services.booking_service import BookingOverrides, BookingService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _booking_id_path() -> Any:
    return Path(
        ...,
        description="Booking ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    )


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    teacher_id: Optional[str] = Query(None),
    customer_id: Optional[str] = Query(None),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    """List bookings, ordered by start time."""
    bookings = await asyncio.to_thread(
        booking_service.list_bookings,
        teacher_id=teacher_id,
        customer_id=customer_id,
        status=status_filter.value if status_filter else None,
        start=start,
        end=end,
        limit=limit,
    )
    items = [BookingResponse.from_booking(b) for b in bookings]
    return BookingListResponse(items=items, total=len(items))


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Time conflict"}, 422: {"description": "Rule violation"}},
)
async def create_booking(
    payload: BookingCreate = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Store a customer booking request as PENDING."""
    try:
        booking = await asyncio.to_thread(
            booking_service.request_booking,
            customer_id=payload.customer_id,
            session_type=payload.session_type,
            start_time=payload.start_time,
            end_time=payload.end_time,
            teacher_id=payload.teacher_id,
            package_id=payload.package_id,
            notes=payload.notes,
            idempotency_key=payload.idempotency_key,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}},
)
async def get_booking(
    booking_id: str = _booking_id_path(),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{booking_id}/confirm",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}, 409: {"description": "Conflict"}},
)
async def confirm_booking(
    booking_id: str = _booking_id_path(),
    payload: Optional[BookingConfirm] = Body(None),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Confirm a pending request and debit its package."""
    overrides = None
    confirmed_by = None
    if payload is not None:
        confirmed_by = payload.confirmed_by
        overrides = BookingOverrides(
            teacher_id=payload.teacher_id,
            start_time=payload.start_time,
            end_time=payload.end_time,
            notes=payload.notes,
        )
    try:
        booking = await asyncio.to_thread(
            booking_service.confirm_booking,
            booking_id,
            overrides=overrides,
            confirmed_by=confirmed_by,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: str = _booking_id_path(),
    payload: Optional[BookingReason] = Body(None),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.reject_booking,
            booking_id,
            reason=payload.reason if payload else None,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str = _booking_id_path(),
    payload: Optional[BookingReason] = Body(None),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Direct cancel by teacher or admin."""
    try:
        booking = await asyncio.to_thread(
            booking_service.cancel_booking,
            booking_id,
            reason=payload.reason if payload else None,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{booking_id}/cancellation-request",
    response_model=BookingResponse,
    responses={422: {"description": "Too late to cancel"}},
)
async def request_cancellation(
    booking_id: str = _booking_id_path(),
    payload: Optional[BookingReason] = Body(None),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Customer cancellation. Returns the booking CANCELLED (refunded) or
    CANCELLATION_REQUESTED depending on how far away the session is.
    """
    try:
        booking = await asyncio.to_thread(
            booking_service.request_cancellation,
            booking_id,
            reason=payload.reason if payload else None,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancellation/approve", response_model=BookingResponse)
async def approve_cancellation(
    booking_id: str = _booking_id_path(),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.approve_cancellation, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancellation/reject", response_model=BookingResponse)
async def reject_cancellation(
    booking_id: str = _booking_id_path(),
    payload: Optional[BookingReason] = Body(None),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.reject_cancellation,
            booking_id,
            reason=payload.reason if payload else None,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/attendance", response_model=BookingResponse)
async def mark_attendance(
    booking_id: str = _booking_id_path(),
    payload: AttendanceUpdate = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.mark_attendance,
            booking_id,
            payload.outcome,
            marked_by=payload.marked_by,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)
