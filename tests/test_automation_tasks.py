from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from conciergeops.config import Settings, settings
from conciergeops.domain.recurrence import weekday_number
from conciergeops.workers import automation_tasks
from factories import mk_incident, mk_member, mk_org, mk_property, mk_template


@pytest.fixture()
def worker_db(db_session, monkeypatch):
    monkeypatch.setattr(automation_tasks, "SessionLocal", lambda: db_session)
    monkeypatch.setattr(settings, "resend_api_key", None)
    return db_session


def test_recurrence_task_returns_sweep_counts(worker_db):
    org = mk_org(worker_db)
    prop = mk_property(worker_db, org)
    mk_template(worker_db, org, prop, day_of_week=weekday_number(datetime.utcnow()))

    out = automation_tasks.generate_recurring_tasks()
    assert out == {"success": True, "generated": 1, "skipped": 0, "failed": 0}


def test_escalation_task_returns_sweep_counts(worker_db):
    org = mk_org(worker_db)
    prop = mk_property(worker_db, org)
    mk_incident(worker_db, org, prop, opened_at=datetime.utcnow() - timedelta(hours=50))

    out = automation_tasks.escalate_incidents()
    assert out["success"] is True
    assert out["escalated"] == 1
    assert out["by_rule"] == {"minor->medium": 1, "medium->critical": 0}


def test_reminder_task_returns_sweep_counts(worker_db):
    org = mk_org(worker_db)
    prop = mk_property(worker_db, org)
    mk_member(worker_db, org, "admin@acme.local", role="admin")
    mk_incident(worker_db, org, prop, opened_at=datetime.utcnow() - timedelta(days=8))

    out = automation_tasks.remind_open_incidents()
    assert out == {"success": True, "reminders_sent": 1, "skipped": 0, "failed": 0}


def test_settings_reject_bad_reminder_interval():
    with pytest.raises(ValueError):
        Settings(reminder_interval_days=0)


def test_settings_prod_guards():
    with pytest.raises(ValueError):
        Settings(app_env="prod", auth_mode="header", cron_secret="", cors_allow_origins=["https://ops.example"])
    with pytest.raises(ValueError):
        Settings(app_env="prod", auth_mode="dev", cron_secret="x", cors_allow_origins=["https://ops.example"])
    ok = Settings(app_env="prod", auth_mode="header", cron_secret="x", cors_allow_origins=["https://ops.example"])
    assert ok.cron_secret == "x"
