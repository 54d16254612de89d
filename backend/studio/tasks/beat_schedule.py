# backend/studio/tasks/beat_schedule.py
"""
Celery Beat schedule for the session sweeps.

Each sweep is idempotent, so overlapping runs or a missed tick are harmless.
"""

from typing import Any, Dict

from celery.schedules import crontab


def get_beat_schedule(sweep_interval_minutes: int = 60) -> Dict[str, Dict[str, Any]]:
    """Build the beat schedule; sweeps run every ``sweep_interval_minutes``."""
    if sweep_interval_minutes >= 60:
        sweep_schedule = crontab(minute=0, hour=f"*/{max(1, sweep_interval_minutes // 60)}")
    else:
        sweep_schedule = crontab(minute=f"*/{sweep_interval_minutes}")

    return {
        "auto-confirm-stale-requests": {
            "task": "studio.tasks.sweep.auto_confirm_stale_requests",
            "schedule": crontab(minute="*/15"),
            "options": {"queue": "maintenance", "priority": 6},
        },
        "complete-elapsed-sessions": {
            "task": "studio.tasks.sweep.complete_elapsed_sessions",
            "schedule": sweep_schedule,
            "options": {"queue": "maintenance", "priority": 5},
        },
        "create-session-reminders": {
            "task": "studio.tasks.sweep.create_session_reminders",
            "schedule": crontab(minute=10),
            "options": {"queue": "maintenance", "priority": 7},
        },
        # Expiry only flips a snapshot; once a day is enough
        "expire-packages": {
            "task": "studio.tasks.sweep.expire_packages",
            "schedule": crontab(hour=0, minute=5),
            "options": {"queue": "maintenance", "priority": 3},
        },
    }
