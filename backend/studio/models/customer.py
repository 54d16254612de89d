# backend/studio/models/customer.py
"""Customer model: owns packages and accumulates a cancellation counter."""

from typing import Any

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(50), nullable=True)
    preferred_teacher_id = Column(String(26), ForeignKey("teachers.id"), nullable=True)

    # Incremented when a confirmed booking ends up cancelled by the customer
    total_cancellations = Column(Integer, nullable=False, default=0)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    preferred_teacher = relationship("Teacher", foreign_keys=[preferred_teacher_id])
    packages = relationship("Package", back_populates="customer", lazy="dynamic")

    __table_args__ = (
        CheckConstraint("total_cancellations >= 0", name="check_total_cancellations_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Customer {self.id}: {self.name} cancellations={self.total_cancellations}>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "preferred_teacher_id": self.preferred_teacher_id,
            "total_cancellations": self.total_cancellations or 0,
        }
