from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from studio.core.exceptions import ValidationException
from studio.domain.interval import TimeInterval

START = datetime(2025, 6, 10, 3, 0, tzinfo=timezone.utc)


def test_end_must_follow_start() -> None:
    with pytest.raises(ValidationException) as exc_info:
        TimeInterval(START, START)
    assert exc_info.value.code == "INVALID_INTERVAL"


def test_values_are_normalized_to_utc() -> None:
    bangkok = timezone(timedelta(hours=7))
    local_start = datetime(2025, 6, 10, 10, 0, tzinfo=bangkok)
    interval = TimeInterval(local_start, START + timedelta(hours=1))

    assert interval.start == START
    assert interval.start.tzinfo == timezone.utc
    assert interval.duration_minutes == 60


def test_half_open_overlap() -> None:
    interval = TimeInterval.from_start(START, 60)

    assert interval.overlaps(START + timedelta(minutes=59), START + timedelta(hours=2))
    assert not interval.overlaps(START + timedelta(hours=1), START + timedelta(hours=2))
    assert not interval.overlaps(START - timedelta(hours=1), START)


def test_slots_drop_trailing_partial() -> None:
    window = TimeInterval(START, START + timedelta(minutes=150))

    slots = list(window.slots(60))

    assert [s.start for s in slots] == [START, START + timedelta(hours=1)]
    assert all(s.duration_minutes == 60 for s in slots)
