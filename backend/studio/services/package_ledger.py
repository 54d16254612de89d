"""
Package session ledger.

Pure functions that derive how many sessions of a package are consumed
(debited), reserved (upcoming) and still bookable (available) from the
package's bookings at a given instant. These derived numbers drive every
business decision; ``Package.remaining_sessions`` is only a cached counter
that reconciliation compares against ``expected_stored_remaining``.

A confirmed session whose end time has passed counts as debited even if
nobody marked attendance yet.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol

from studio.core.clock import ensure_utc
from studio.models.booking import BookingStatus
from studio.models.package import PackageStatus


class _LedgerBooking(Protocol):
    status: str
    end_time: datetime


class _LedgerPackage(Protocol):
    total_sessions: int
    remaining_sessions: int
    valid_from: datetime
    valid_to: datetime


# Bookings in these statuses have already decremented the stored counter
_COUNTER_DEBITED = {
    BookingStatus.CONFIRMED.value,
    BookingStatus.CANCELLATION_REQUESTED.value,
    BookingStatus.COMPLETED.value,
    BookingStatus.NO_SHOW.value,
}
_CONSUMED = {BookingStatus.COMPLETED.value, BookingStatus.NO_SHOW.value}
_HELD = {BookingStatus.CONFIRMED.value, BookingStatus.CANCELLATION_REQUESTED.value}


def _is_debited(booking: _LedgerBooking, as_of: datetime) -> bool:
    if booking.status in _CONSUMED:
        return True
    return booking.status in _HELD and ensure_utc(booking.end_time) < as_of


def _is_upcoming(booking: _LedgerBooking, as_of: datetime) -> bool:
    if booking.status == BookingStatus.PENDING.value or booking.status in _HELD:
        return ensure_utc(booking.end_time) >= as_of
    return False


def debited_count(bookings: Iterable[_LedgerBooking], as_of: datetime) -> int:
    as_of = ensure_utc(as_of)
    return sum(1 for b in bookings if _is_debited(b, as_of))


def upcoming_count(bookings: Iterable[_LedgerBooking], as_of: datetime) -> int:
    as_of = ensure_utc(as_of)
    return sum(1 for b in bookings if _is_upcoming(b, as_of))


def remaining_sessions(
    package: _LedgerPackage, bookings: Iterable[_LedgerBooking], as_of: datetime
) -> int:
    return package.total_sessions - debited_count(bookings, as_of)


def available_to_book(
    package: _LedgerPackage, bookings: Iterable[_LedgerBooking], as_of: datetime
) -> int:
    booking_list = list(bookings)
    return (
        package.total_sessions
        - debited_count(booking_list, as_of)
        - upcoming_count(booking_list, as_of)
    )


def derived_status(
    package: _LedgerPackage, bookings: Iterable[_LedgerBooking], as_of: datetime
) -> PackageStatus:
    """The only place package status is derived."""
    as_of = ensure_utc(as_of)
    if ensure_utc(package.valid_to) <= as_of:
        return PackageStatus.EXPIRED
    if debited_count(bookings, as_of) >= package.total_sessions:
        return PackageStatus.USED
    return PackageStatus.ACTIVE


def expected_stored_remaining(
    package: _LedgerPackage, bookings: Iterable[_LedgerBooking]
) -> int:
    """What ``remaining_sessions`` should hold given every confirm/refund so far."""
    debited = sum(1 for b in bookings if b.status in _COUNTER_DEBITED)
    return package.total_sessions - debited


@dataclass(frozen=True)
class LedgerSnapshot:
    total_sessions: int
    debited: int
    upcoming: int
    available: int
    stored_remaining: int
    expected_stored_remaining: int
    status: PackageStatus
    as_of: datetime

    @property
    def remaining_sessions(self) -> int:
        return self.total_sessions - self.debited

    @property
    def is_balanced(self) -> bool:
        return self.debited + self.upcoming + self.available == self.total_sessions

    @property
    def is_consistent(self) -> bool:
        return (
            self.is_balanced
            and self.available >= 0
            and 0 <= self.expected_stored_remaining <= self.total_sessions
        )

    @property
    def counter_drift(self) -> int:
        return self.stored_remaining - self.expected_stored_remaining

    def to_dict(self) -> dict[str, object]:
        return {
            "total_sessions": self.total_sessions,
            "remaining_sessions": self.remaining_sessions,
            "debited": self.debited,
            "upcoming": self.upcoming,
            "available": self.available,
            "stored_remaining": self.stored_remaining,
            "status": self.status.value,
            "as_of": self.as_of.isoformat(),
        }


def snapshot(
    package: _LedgerPackage, bookings: Iterable[_LedgerBooking], as_of: datetime
) -> LedgerSnapshot:
    as_of = ensure_utc(as_of)
    booking_list = list(bookings)
    debited = debited_count(booking_list, as_of)
    upcoming = upcoming_count(booking_list, as_of)
    return LedgerSnapshot(
        total_sessions=package.total_sessions,
        debited=debited,
        upcoming=upcoming,
        available=package.total_sessions - debited - upcoming,
        stored_remaining=package.remaining_sessions,
        expected_stored_remaining=expected_stored_remaining(package, booking_list),
        status=derived_status(package, booking_list, as_of),
        as_of=as_of,
    )
