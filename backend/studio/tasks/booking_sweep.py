# backend/studio/tasks/booking_sweep.py
"""Celery entry points for the periodic session sweeps."""

from __future__ import annotations

from typing import Any, Callable, Dict, TypeVar, cast

from celery.utils.log import get_task_logger

from studio.database import get_db_session
from studio.services.session_sweep_service import SessionSweepService
from studio.tasks.celery_app import celery_app

logger = get_task_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _typed_task(*task_args: Any, **task_kwargs: Any) -> Callable[[F], F]:
    return cast(Callable[[F], F], celery_app.task(*task_args, **task_kwargs))


@_typed_task(name="studio.tasks.sweep.complete_elapsed_sessions", max_retries=0)
def complete_elapsed_sessions() -> Dict[str, int]:
    with get_db_session() as db:
        completed = SessionSweepService(db).complete_elapsed_sessions()
    logger.info("complete_elapsed_sessions finished: %s", completed)
    return {"completed": completed}


@_typed_task(name="studio.tasks.sweep.expire_packages", max_retries=0)
def expire_packages() -> Dict[str, int]:
    with get_db_session() as db:
        expired = SessionSweepService(db).expire_packages()
    logger.info("expire_packages finished: %s", expired)
    return {"expired_packages": expired}


@_typed_task(name="studio.tasks.sweep.auto_confirm_stale_requests", max_retries=0)
def auto_confirm_stale_requests() -> Dict[str, int]:
    with get_db_session() as db:
        confirmed = SessionSweepService(db).auto_confirm_stale_requests()
    logger.info("auto_confirm_stale_requests finished: %s", confirmed)
    return {"auto_confirmed": confirmed}


@_typed_task(name="studio.tasks.sweep.create_session_reminders", max_retries=0)
def create_session_reminders() -> Dict[str, int]:
    with get_db_session() as db:
        created = SessionSweepService(db).create_session_reminders()
    logger.info("create_session_reminders finished: %s", created)
    return {"reminders_created": created}
