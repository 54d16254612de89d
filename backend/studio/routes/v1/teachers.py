# backend/studio/routes/v1/teachers.py
"""
Teacher routes - API v1

Endpoints:
    POST /{teacher_id}/sessions - Teacher-entered session (created CONFIRMED)
    POST /{teacher_id}/blocks - Block time
    DELETE /{teacher_id}/blocks/{booking_id} - Remove a block
"""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, Response, status
from fastapi.params import Path

from ...api.dependencies import get_booking_service
from ...core.exceptions import DomainException, NotFoundException
from ...schemas.booking import BlockCreate, BookingResponse, ManualSessionCreate
from ...services.booking_service import BookingService
from .bookings import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["teachers-v1"])


@router.post(
    "/{teacher_id}/sessions",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_manual_session(
    teacher_id: str = Path(..., description="Teacher ULID", pattern=ULID_PATH_PATTERN),
    payload: ManualSessionCreate = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Record a session the teacher arranged directly; debits the package now."""
    try:
        booking = await asyncio.to_thread(
            booking_service.create_manual_session,
            teacher_id=teacher_id,
            customer_id=payload.customer_id,
            session_type=payload.session_type,
            start_time=payload.start_time,
            end_time=payload.end_time,
            package_id=payload.package_id,
            notes=payload.notes,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{teacher_id}/blocks",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def block_time(
    teacher_id: str = Path(..., description="Teacher ULID", pattern=ULID_PATH_PATTERN),
    payload: BlockCreate = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.block_time,
            teacher_id,
            payload.start_time,
            payload.end_time,
            notes=payload.notes,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{teacher_id}/blocks/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unblock_time(
    teacher_id: str = Path(..., description="Teacher ULID", pattern=ULID_PATH_PATTERN),
    booking_id: str = Path(..., description="Block ULID", pattern=ULID_PATH_PATTERN),
    booking_service: BookingService = Depends(get_booking_service),
) -> Response:
    try:
        block = await asyncio.to_thread(booking_service.get_booking, booking_id)
        if block.teacher_id != teacher_id:
            raise NotFoundException("Block not found", details={"booking_id": booking_id})
        await asyncio.to_thread(booking_service.unblock_time, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
