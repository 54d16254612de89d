# backend/studio/models/package.py
"""
Session package model.

``remaining_sessions`` is a display counter maintained with atomic
UPDATE statements on confirm and refund. ``status`` is a snapshot written by
the expiry sweep and by reconciliation; decisions always go through
``studio.services.package_ledger``.
"""

from enum import Enum
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime


class PackageStatus(str, Enum):
    ACTIVE = "ACTIVE"
    USED = "USED"
    EXPIRED = "EXPIRED"


class Package(Base):
    __tablename__ = "packages"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    customer_id = Column(String(26), ForeignKey("customers.id"), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    session_type = Column(String(20), nullable=False)

    total_sessions = Column(Integer, nullable=False)
    remaining_sessions = Column(Integer, nullable=False)

    valid_from = Column(UTCDateTime, nullable=False)
    valid_to = Column(UTCDateTime, nullable=False)

    price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="THB")

    status = Column(String(20), nullable=False, default=PackageStatus.ACTIVE.value)
    needs_reconciliation = Column(Boolean, nullable=False, default=False)
    reconciliation_note = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    customer = relationship("Customer", back_populates="packages")
    bookings = relationship("Booking", back_populates="package")

    __table_args__ = (
        CheckConstraint("total_sessions >= 1", name="check_total_sessions_positive"),
        CheckConstraint(
            "remaining_sessions >= 0 AND remaining_sessions <= total_sessions",
            name="check_remaining_sessions_range",
        ),
        CheckConstraint("valid_to > valid_from", name="check_validity_order"),
        CheckConstraint("price >= 0", name="check_package_price_non_negative"),
        CheckConstraint(
            "session_type IN ('PRIVATE', 'DUO', 'GROUP')",
            name="ck_packages_session_type",
        ),
        CheckConstraint(
            "status IN ('ACTIVE', 'USED', 'EXPIRED')",
            name="ck_packages_status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Package {self.id}: customer={self.customer_id}, type={self.session_type}, "
            f"{self.remaining_sessions}/{self.total_sessions}>"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "name": self.name,
            "session_type": self.session_type,
            "total_sessions": self.total_sessions,
            "remaining_sessions": self.remaining_sessions,
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_to": self.valid_to.isoformat() if self.valid_to else None,
            "price": float(self.price) if self.price is not None else 0.0,
            "currency": self.currency,
            "status": self.status,
            "needs_reconciliation": bool(self.needs_reconciliation),
        }
