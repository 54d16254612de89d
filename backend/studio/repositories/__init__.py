# backend/studio/repositories/__init__.py
"""
Repository Pattern Implementation for the studio booking engine.

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- BookingRepository: compare-and-set status transitions, sweep queries
- PackageRepository: atomic session counter debit/refund
- ConflictCheckerRepository: overlapping active bookings for a window
- CustomerRepository / TeacherRepository: counters and scheduling locks
- RepositoryFactory: Factory for creating repository instances
"""

from .base_repository import BaseRepository, IRepository
from .booking_repository import BookingRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .customer_repository import CustomerRepository
from .factory import RepositoryFactory
from .package_repository import PackageRepository
from .teacher_repository import TeacherRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "ConflictCheckerRepository",
    "CustomerRepository",
    "IRepository",
    "PackageRepository",
    "RepositoryFactory",
    "TeacherRepository",
]
