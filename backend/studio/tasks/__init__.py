# backend/studio/tasks/__init__.py
"""
Celery tasks package for the studio booking engine.

- Session sweeps (auto-confirm, auto-complete, package expiry)
- Notification delivery
"""

from studio.tasks.celery_app import BaseTask, celery_app

__all__ = ["celery_app", "BaseTask"]
