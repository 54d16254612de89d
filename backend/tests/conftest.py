# backend/tests/conftest.py
"""
Pytest configuration for the studio booking engine.

Tests run against an in-memory SQLite database with a pinned clock. The
environment is set BEFORE any studio import so settings pick it up.
"""

import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("CI", "1")

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from studio.api.dependencies import get_calendar_sync_dep, get_clock, get_db, get_notifier_dep
from studio.core.clock import FixedClock
from studio.core.config import settings
from studio.database import Base, SessionLocal, engine
from studio.main import app
import studio.models  # noqa: F401  (registers mappers)
from studio.models.booking import Booking, BookingStatus, SessionType
from studio.models.customer import Customer
from studio.models.package import Package, PackageStatus
from studio.models.teacher import Teacher
from studio.services.booking_service import BookingService

# Monday 2025-06-02 10:00 in Bangkok
NOW = datetime(2025, 6, 2, 3, 0, tzinfo=timezone.utc)


class RecordingNotifier:
    """Collects notifications instead of delivering them."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, Dict[str, Any]]] = []

    def send(self, event: str, payload: Dict[str, Any]) -> None:
        self.sent.append((event, payload))

    def events(self) -> List[str]:
        return [event for event, _ in self.sent]


class RecordingCalendar:
    """Calendar client that records calls and can be told to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.created: List[str] = []
        self.deleted: List[str] = []

    def create_event(self, booking: Booking) -> Optional[str]:
        if self.fail:
            raise RuntimeError("calendar provider unavailable")
        self.created.append(booking.id)
        return f"evt-{booking.id}"

    def delete_event(self, booking: Booking) -> None:
        if self.fail:
            raise RuntimeError("calendar provider unavailable")
        self.deleted.append(booking.id)


@pytest.fixture(scope="function")
def db() -> Iterator[Session]:
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def calendar() -> RecordingCalendar:
    return RecordingCalendar()


@pytest.fixture
def booking_service(
    db: Session, clock: FixedClock, notifier: RecordingNotifier, calendar: RecordingCalendar
) -> BookingService:
    return BookingService(db, clock=clock, calendar_sync=calendar, notifier=notifier)


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_teacher(db: Session) -> Callable[..., Teacher]:
    counter = {"n": 0}

    def _make(name: Optional[str] = None, is_active: bool = True) -> Teacher:
        counter["n"] += 1
        teacher = Teacher(
            name=name or f"Teacher {counter['n']}",
            email=f"teacher{counter['n']}@studio.test",
            is_active=is_active,
        )
        db.add(teacher)
        db.commit()
        return teacher

    return _make


@pytest.fixture
def make_customer(db: Session) -> Callable[..., Customer]:
    counter = {"n": 0}

    def _make(name: Optional[str] = None, preferred_teacher: Optional[Teacher] = None) -> Customer:
        counter["n"] += 1
        customer = Customer(
            name=name or f"Customer {counter['n']}",
            email=f"customer{counter['n']}@studio.test",
            preferred_teacher_id=preferred_teacher.id if preferred_teacher else None,
            total_cancellations=0,
        )
        db.add(customer)
        db.commit()
        return customer

    return _make


@pytest.fixture
def make_package(db: Session) -> Callable[..., Package]:
    def _make(
        customer: Customer,
        total: int = 10,
        remaining: Optional[int] = None,
        session_type: str = SessionType.PRIVATE.value,
        valid_from: Optional[datetime] = None,
        valid_to: Optional[datetime] = None,
        status: str = PackageStatus.ACTIVE.value,
    ) -> Package:
        package = Package(
            customer_id=customer.id,
            name=f"{total}-session {session_type.lower()} pack",
            session_type=session_type,
            total_sessions=total,
            remaining_sessions=total if remaining is None else remaining,
            valid_from=valid_from or NOW - timedelta(days=30),
            valid_to=valid_to or NOW + timedelta(days=90),
            price=3500,
            status=status,
        )
        db.add(package)
        db.commit()
        return package

    return _make


@pytest.fixture
def make_booking(db: Session) -> Callable[..., Booking]:
    """Insert a booking directly, bypassing service rules."""

    def _make(
        teacher: Teacher,
        start: datetime,
        customer: Optional[Customer] = None,
        minutes: int = 60,
        status: str = BookingStatus.CONFIRMED.value,
        session_type: str = SessionType.PRIVATE.value,
        package: Optional[Package] = None,
        created_at: Optional[datetime] = None,
        is_requested_by_customer: bool = True,
    ) -> Booking:
        booking = Booking(
            customer_id=customer.id if customer else None,
            teacher_id=teacher.id,
            package_id=package.id if package else None,
            session_type=session_type,
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            status=status,
            is_requested_by_customer=is_requested_by_customer,
            created_at=created_at or NOW,
        )
        db.add(booking)
        db.commit()
        return booking

    return _make


# ============================================================================
# HTTP client
# ============================================================================


@pytest.fixture
def client(
    db: Session, clock: FixedClock, notifier: RecordingNotifier, calendar: RecordingCalendar
) -> Iterator[TestClient]:
    """Create a test client bound to the test session and clock."""

    def override_get_db() -> Iterator[Session]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier_dep] = lambda: notifier
    app.dependency_overrides[get_calendar_sync_dep] = lambda: calendar

    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture(autouse=True)
def _restore_settings() -> Iterator[None]:
    snapshot = settings.model_dump()
    yield
    for key, value in snapshot.items():
        setattr(settings, key, value)
