# backend/studio/repositories/package_repository.py
"""
Package Repository.

The stored ``remaining_sessions`` counter only changes through single-row
atomic UPDATEs guarded in the WHERE clause; it is never read, modified in
Python and written back.
"""

from datetime import datetime
import logging
from typing import Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.package import Package, PackageStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PackageRepository(BaseRepository[Package]):
    def __init__(self, db: Session):
        super().__init__(db, Package)

    def get_fresh(self, package_id: str) -> Optional[Package]:
        try:
            return self.db.get(Package, package_id, populate_existing=True)
        except SQLAlchemyError as e:
            self.logger.error(f"Error reloading package {package_id}: {str(e)}")
            raise RepositoryException(f"Failed to reload package: {str(e)}")

    def get_for_update(self, package_id: str) -> Optional[Package]:
        """Row-lock the package for the rest of the transaction (no-op on SQLite)."""
        try:
            return cast(
                Optional[Package],
                self.db.query(Package)
                .filter(Package.id == package_id)
                .populate_existing()
                .with_for_update()
                .one_or_none(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking package {package_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock package: {str(e)}")

    def debit_session(self, package_id: str) -> bool:
        """Decrement the counter by one; False if it was already zero."""
        try:
            rows = (
                self.db.query(Package)
                .filter(Package.id == package_id, Package.remaining_sessions > 0)
                .update(
                    {Package.remaining_sessions: Package.remaining_sessions - 1},
                    synchronize_session=False,
                )
            )
            return bool(rows)
        except SQLAlchemyError as e:
            self.logger.error(f"Error debiting package {package_id}: {str(e)}")
            raise RepositoryException(f"Failed to debit package: {str(e)}")

    def refund_session(self, package_id: str) -> bool:
        """Increment the counter by one, never past total; False if already full."""
        try:
            rows = (
                self.db.query(Package)
                .filter(
                    Package.id == package_id,
                    Package.remaining_sessions < Package.total_sessions,
                )
                .update(
                    {Package.remaining_sessions: Package.remaining_sessions + 1},
                    synchronize_session=False,
                )
            )
            return bool(rows)
        except SQLAlchemyError as e:
            self.logger.error(f"Error refunding package {package_id}: {str(e)}")
            raise RepositoryException(f"Failed to refund package: {str(e)}")

    def set_remaining_sessions(self, package_id: str, remaining: int) -> None:
        try:
            self.db.query(Package).filter(Package.id == package_id).update(
                {Package.remaining_sessions: remaining}, synchronize_session=False
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error correcting package {package_id}: {str(e)}")
            raise RepositoryException(f"Failed to correct package counter: {str(e)}")

    def mark_expired(self, as_of: datetime) -> int:
        """Write the EXPIRED snapshot for lapsed packages; returns rows changed."""
        try:
            rows = (
                self.db.query(Package)
                .filter(
                    Package.valid_to <= as_of,
                    Package.status != PackageStatus.EXPIRED.value,
                )
                .update({Package.status: PackageStatus.EXPIRED.value}, synchronize_session=False)
            )
            return int(rows or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error expiring packages: {str(e)}")
            raise RepositoryException(f"Failed to expire packages: {str(e)}")
