from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterator
from unittest.mock import Mock

import pytest

from studio.core.clock import FixedClock
from studio.core.exceptions import ValidationException
from studio.services.base import BaseService


class _MeteredService(BaseService):
    @BaseService.measure_operation("metered_call")
    def metered_call(self, fail: bool = False) -> str:
        if fail:
            raise ValidationException("bad call")
        return "ok"


@pytest.fixture
def metered_service() -> Iterator[_MeteredService]:
    clock = FixedClock(datetime(2025, 6, 2, 3, 0, tzinfo=timezone.utc))
    service = _MeteredService(Mock(), clock=clock)
    service.reset_metrics()
    yield service
    service.reset_metrics()


def test_measured_operation_records_success_and_failure(metered_service: _MeteredService) -> None:
    assert metered_service.metered_call() == "ok"
    with pytest.raises(ValidationException):
        metered_service.metered_call(fail=True)

    metrics = metered_service.get_metrics()["metered_call"]
    assert metrics["count"] == 2
    assert metrics["failure_count"] == 1
    assert metrics["success_rate"] == 0.5


def test_reset_clears_recorded_operations(metered_service: _MeteredService) -> None:
    metered_service.metered_call()
    metered_service.reset_metrics()

    assert metered_service.get_metrics() == {}


def test_transaction_rolls_back_on_domain_error() -> None:
    db = Mock()
    service = _MeteredService(db)

    with pytest.raises(ValidationException):
        with service.transaction():
            raise ValidationException("nope")

    db.rollback.assert_called_once()
    db.commit.assert_not_called()
