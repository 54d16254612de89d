# backend/studio/services/package_service.py
"""
Package Service.

Reads and repairs a package's session ledger. The booking history is the
source of truth; the stored ``remaining_sessions`` counter and ``status``
snapshot are derived values that this service can rewrite.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.exceptions import LedgerIntegrityException, NotFoundException
from ..models.package import Package
from ..repositories.factory import RepositoryFactory
from . import package_ledger
from .base import BaseService
from .package_ledger import LedgerSnapshot

logger = logging.getLogger(__name__)


class PackageService(BaseService):
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.package_repository = RepositoryFactory.create_package_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    def _get_package(self, package_id: str) -> Package:
        package = self.package_repository.get_fresh(package_id)
        if package is None:
            raise NotFoundException("Package not found", details={"package_id": package_id})
        return package

    def _snapshot(self, package: Package) -> LedgerSnapshot:
        bookings = self.booking_repository.get_package_bookings(package.id)
        return package_ledger.snapshot(package, bookings, self.clock.now())

    @BaseService.measure_operation("get_ledger")
    def get_ledger(self, package_id: str) -> Dict[str, Any]:
        """Read-only ledger view for ``package_id`` as of now."""
        package = self._get_package(package_id)
        ledger = self._snapshot(package)
        return {"package_id": package.id, **ledger.to_dict()}

    @BaseService.measure_operation("reconcile_package")
    def reconcile_package(self, package_id: str) -> Dict[str, Any]:
        """
        Recompute the ledger from booking history and repair the stored values.

        A drifted counter is rewritten and the status snapshot refreshed. If the
        history itself violates conservation the package is flagged
        ``needs_reconciliation`` and LedgerIntegrityException is raised after
        the flag is committed.

        Returns:
            {package_id, remaining_sessions, debited, upcoming, available, status, ...}

        Raises:
            NotFoundException: unknown package
            LedgerIntegrityException: booking history is inconsistent
        """
        with self.transaction():
            package = self.package_repository.get_for_update(package_id)
            if package is None:
                raise NotFoundException("Package not found", details={"package_id": package_id})
            ledger = self._snapshot(package)

            if not ledger.is_consistent:
                note = (
                    f"debited={ledger.debited} upcoming={ledger.upcoming} "
                    f"available={ledger.available} total={ledger.total_sessions}"
                )
                self.package_repository.update(
                    package.id, needs_reconciliation=True, reconciliation_note=note
                )
                logger.error(
                    f"Package {package.id} failed ledger conservation: {note}",
                    extra={"package_id": package.id, **ledger.to_dict()},
                )
                integrity_error: Optional[LedgerIntegrityException] = LedgerIntegrityException(
                    package.id, ledger.to_dict()
                )
            else:
                integrity_error = None
                if ledger.counter_drift != 0:
                    logger.warning(
                        f"Correcting remaining_sessions for package {package.id}: "
                        f"stored={ledger.stored_remaining} "
                        f"expected={ledger.expected_stored_remaining}",
                        extra={"package_id": package.id, "drift": ledger.counter_drift},
                    )
                    self.package_repository.set_remaining_sessions(
                        package.id, ledger.expected_stored_remaining
                    )
                self.package_repository.update(
                    package.id,
                    status=ledger.status.value,
                    needs_reconciliation=False,
                    reconciliation_note=None,
                )

        if integrity_error is not None:
            raise integrity_error

        self.log_operation(
            "reconcile_package",
            package_id=package_id,
            status=ledger.status.value,
            drift=ledger.counter_drift,
        )
        package = self._get_package(package_id)
        return {
            "package_id": package.id,
            **ledger.to_dict(),
            "stored_remaining": package.remaining_sessions,
            "corrected": ledger.counter_drift != 0,
        }
