"""Cancellation window rules for customer-initiated cancellations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from studio.core.clock import ensure_utc
from studio.core.exceptions import CancellationPolicyException


class CancellationOutcome(str, Enum):
    CANCEL_WITH_REFUND = "CANCEL_WITH_REFUND"
    REQUIRES_APPROVAL = "REQUIRES_APPROVAL"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class CancellationDecision:
    outcome: CancellationOutcome
    hours_until_start: float
    threshold_hours: int
    reason: str | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is not CancellationOutcome.REJECTED

    def to_payload(self) -> dict[str, object]:
        return {
            "outcome": self.outcome.value,
            "hours_until_start": round(self.hours_until_start, 2),
            "threshold_hours": self.threshold_hours,
            "reason": self.reason,
        }


class CancellationPolicyEngine:
    """Maps hours-until-start onto direct cancel, approval-gated, or refused."""

    def __init__(self, direct_hours: int = 12, request_hours: int = 6) -> None:
        if request_hours > direct_hours:
            raise ValueError("request_hours must not exceed direct_hours")
        self.direct_hours = direct_hours
        self.request_hours = request_hours

    def evaluate(self, now: datetime, start_time: datetime) -> CancellationDecision:
        hours_until_start = (ensure_utc(start_time) - ensure_utc(now)).total_seconds() / 3600

        if hours_until_start < 0:
            return CancellationDecision(
                outcome=CancellationOutcome.REJECTED,
                hours_until_start=hours_until_start,
                threshold_hours=0,
                reason="Session has already started",
            )
        if hours_until_start < self.request_hours:
            return CancellationDecision(
                outcome=CancellationOutcome.REJECTED,
                hours_until_start=hours_until_start,
                threshold_hours=self.request_hours,
                reason=f"Cannot cancel within {self.request_hours} hours of the session",
            )
        if hours_until_start < self.direct_hours:
            return CancellationDecision(
                outcome=CancellationOutcome.REQUIRES_APPROVAL,
                hours_until_start=hours_until_start,
                threshold_hours=self.direct_hours,
            )
        return CancellationDecision(
            outcome=CancellationOutcome.CANCEL_WITH_REFUND,
            hours_until_start=hours_until_start,
            threshold_hours=self.direct_hours,
        )

    def enforce(self, now: datetime, start_time: datetime) -> CancellationDecision:
        """Like ``evaluate`` but raises for refused cancellations."""
        decision = self.evaluate(now, start_time)
        if not decision.allowed:
            raise CancellationPolicyException(
                decision.reason or "Cancellation not allowed",
                threshold_hours=decision.threshold_hours,
                hours_until_start=decision.hours_until_start,
            )
        return decision


def evaluate_cancellation(
    now: datetime,
    start_time: datetime,
    *,
    direct_hours: int = 12,
    request_hours: int = 6,
) -> CancellationDecision:
    return CancellationPolicyEngine(direct_hours, request_hours).evaluate(now, start_time)
