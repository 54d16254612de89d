from __future__ import annotations

from studio.tasks.beat_schedule import get_beat_schedule


def test_sweeps_are_scheduled() -> None:
    schedule = get_beat_schedule(60)

    assert {entry["task"] for entry in schedule.values()} == {
        "studio.tasks.sweep.auto_confirm_stale_requests",
        "studio.tasks.sweep.complete_elapsed_sessions",
        "studio.tasks.sweep.create_session_reminders",
        "studio.tasks.sweep.expire_packages",
    }


def test_sub_hour_interval_uses_minute_step() -> None:
    schedule = get_beat_schedule(20)

    crontab = schedule["complete-elapsed-sessions"]["schedule"]
    assert crontab.minute == {0, 20, 40}


def test_registered_task_names_match_schedule() -> None:
    from studio.tasks import booking_sweep  # noqa: F401  (registers tasks)
    from studio.tasks.celery_app import celery_app

    for entry in get_beat_schedule().values():
        assert entry["task"] in celery_app.tasks


def test_reminders_run_hourly() -> None:
    crontab = get_beat_schedule(20)["create-session-reminders"]["schedule"]

    assert crontab.minute == {10}
    assert len(crontab.hour) == 24
