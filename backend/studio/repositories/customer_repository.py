# backend/studio/repositories/customer_repository.py
"""Customer Repository."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.customer import Customer
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CustomerRepository(BaseRepository[Customer]):
    def __init__(self, db: Session):
        super().__init__(db, Customer)

    def increment_cancellations(self, customer_id: str) -> None:
        """Atomic ``total_cancellations + 1``."""
        try:
            self.db.query(Customer).filter(Customer.id == customer_id).update(
                {Customer.total_cancellations: Customer.total_cancellations + 1},
                synchronize_session=False,
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting cancellation for {customer_id}: {str(e)}")
            raise RepositoryException(f"Failed to update cancellation count: {str(e)}")
