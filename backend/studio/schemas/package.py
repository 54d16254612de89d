# backend/studio/schemas/package.py
"""Package ledger schemas."""

from datetime import datetime

from ._strict_base import StrictModel


class PackageLedgerResponse(StrictModel):
    package_id: str
    total_sessions: int
    remaining_sessions: int
    debited: int
    upcoming: int
    available: int
    stored_remaining: int
    status: str
    as_of: datetime


class PackageReconcileResponse(PackageLedgerResponse):
    corrected: bool
