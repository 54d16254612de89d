# backend/studio/routes/v1/availability.py
"""
Availability routes - API v1

Endpoints:
    GET / - Slot-by-slot studio availability for a window
"""

import asyncio
from datetime import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_availability_service
from ...core.config import settings
from ...core.exceptions import DomainException
from ...schemas.availability import AvailabilityResponse, SlotResponse
from ...services.availability_service import AvailabilityService
from .bookings import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


@router.get("", response_model=AvailabilityResponse)
async def get_availability(
    start: datetime = Query(..., description="Window start"),
    end: datetime = Query(..., description="Window end"),
    teacher_id: Optional[str] = Query(None),
    customer_id: Optional[str] = Query(None),
    slot_minutes: Optional[int] = Query(None, ge=15, le=240),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    """
    Classify each slot in the window as AVAILABLE, PARTIAL or BLOCKED.

    Results are advisory; booking operations re-check under lock.
    """
    try:
        assessments = await asyncio.to_thread(
            availability_service.get_availability,
            start,
            end,
            teacher_id=teacher_id,
            customer_id=customer_id,
            slot_minutes=slot_minutes,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return AvailabilityResponse(
        start_time=start,
        end_time=end,
        teacher_id=teacher_id,
        slot_minutes=slot_minutes or settings.session_duration_minutes,
        slots=[SlotResponse.from_assessment(a) for a in assessments],
    )
