# backend/studio/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.clock import Clock, system_clock
from ...core.config import settings
from ...integrations import CalendarSync, get_calendar_sync
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.notification_service import Notifier, get_notifier
from ...services.package_service import PackageService
from .database import get_db

logger = logging.getLogger(__name__)


def get_clock() -> Clock:
    """Time source; tests override this with a FixedClock."""
    return system_clock


def get_notifier_dep() -> Notifier:
    return get_notifier()


def get_calendar_sync_dep() -> CalendarSync:
    return get_calendar_sync()


def get_booking_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier_dep),
    calendar_sync: CalendarSync = Depends(get_calendar_sync_dep),
) -> BookingService:
    """
    Get booking service instance with all dependencies.

    Args:
        db: Database session
        clock: Time source for window rules
        notifier: Notification sink used after commit
        calendar_sync: External calendar client

    Returns:
        BookingService instance
    """
    return BookingService(
        db,
        clock=clock,
        calendar_sync=calendar_sync,
        notifier=notifier,
        config=settings,
    )


def get_availability_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> AvailabilityService:
    return AvailabilityService(db, clock=clock, config=settings)


def get_package_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> PackageService:
    return PackageService(db, clock=clock)
