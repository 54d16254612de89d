# backend/studio/repositories/factory.py
"""
Repository Factory for the studio booking engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from sqlalchemy.orm import Session

from .booking_repository import BookingRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .customer_repository import CustomerRepository
from .package_repository import PackageRepository
from .teacher_repository import TeacherRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_booking_repository(db: Session) -> BookingRepository:
        return BookingRepository(db)

    @staticmethod
    def create_conflict_checker_repository(db: Session) -> ConflictCheckerRepository:
        return ConflictCheckerRepository(db)

    @staticmethod
    def create_package_repository(db: Session) -> PackageRepository:
        return PackageRepository(db)

    @staticmethod
    def create_customer_repository(db: Session) -> CustomerRepository:
        return CustomerRepository(db)

    @staticmethod
    def create_teacher_repository(db: Session) -> TeacherRepository:
        return TeacherRepository(db)
