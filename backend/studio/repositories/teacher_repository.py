# backend/studio/repositories/teacher_repository.py
"""
Teacher Repository.

``lock_for_scheduling`` takes a row lock on the teacher so concurrent
create-if-no-conflict sequences for the same teacher run one at a time.
"""

import logging
from typing import Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..database.session_utils import supports_row_locks
from ..models.teacher import Teacher
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TeacherRepository(BaseRepository[Teacher]):
    def __init__(self, db: Session):
        super().__init__(db, Teacher)

    def lock_for_scheduling(self, teacher_id: str) -> Optional[Teacher]:
        try:
            query = self.db.query(Teacher).filter(Teacher.id == teacher_id)
            if supports_row_locks(self.db):
                query = query.with_for_update()
            return cast(Optional[Teacher], query.one_or_none())
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking teacher {teacher_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock teacher: {str(e)}")

