from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import select

from conciergeops.auth import cron_token_ok
from conciergeops.config import settings
from conciergeops.domain.recurrence import weekday_number
from conciergeops.models import Incident, ScheduledTask
from factories import cron_headers, mk_incident, mk_member, mk_org, mk_property, mk_template

ROUTES = (
    "/api/cron/generate-recurring-tasks",
    "/api/cron/incident-escalation",
    "/api/cron/incident-reminders",
)


def test_missing_or_wrong_token_is_rejected(client):
    for path in ROUTES:
        r = client.get(path)
        assert r.status_code == 401
        assert r.json() == {"error": "Unauthorized"}

        r = client.get(path, headers=cron_headers("nope"))
        assert r.status_code == 401
        assert r.json() == {"error": "Unauthorized"}

        r = client.get(path, headers={"Authorization": settings.cron_secret})
        assert r.status_code == 401


def test_empty_secret_rejects_everything(client, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", "")
    for path in ROUTES:
        assert client.get(path, headers=cron_headers("")).status_code == 401
        assert client.get(path, headers={"Authorization": "Bearer "}).status_code == 401


def test_rejected_call_has_no_side_effects(client, db_session):
    org = mk_org(db_session)
    prop = mk_property(db_session, org)
    mk_template(db_session, org, prop, day_of_week=weekday_number(datetime.utcnow()))

    assert client.get(ROUTES[0], headers=cron_headers("nope")).status_code == 401
    assert db_session.scalars(select(ScheduledTask)).all() == []


def test_generate_recurring_tasks_shape(client, db_session):
    org = mk_org(db_session)
    prop = mk_property(db_session, org)
    mk_template(db_session, org, prop, day_of_week=weekday_number(datetime.utcnow()))

    r = client.get(ROUTES[0], headers=cron_headers())
    assert r.status_code == 200
    assert r.json() == {"success": True, "generated": 1}
    assert "X-Request-ID" in r.headers

    r = client.get(ROUTES[0], headers=cron_headers())
    assert r.json() == {"success": True, "generated": 0}


def test_incident_escalation_shape(client, db_session):
    org = mk_org(db_session)
    prop = mk_property(db_session, org)
    mk_member(db_session, org, "admin@acme.local", role="admin")
    inc = mk_incident(db_session, org, prop, opened_at=datetime.utcnow() - timedelta(hours=49))

    r = client.get(ROUTES[1], headers=cron_headers())
    assert r.status_code == 200
    assert r.json() == {"success": True, "escalated": 1}

    db_session.expire_all()
    assert db_session.get(Incident, inc.id).severity == "medium"


def test_incident_reminders_shape(client, db_session):
    org = mk_org(db_session)
    prop = mk_property(db_session, org)
    mk_member(db_session, org, "admin@acme.local", role="admin")
    mk_incident(db_session, org, prop, opened_at=datetime.utcnow() - timedelta(days=9))

    r = client.get(ROUTES[2], headers=cron_headers())
    assert r.status_code == 200
    assert r.json() == {"success": True, "reminders_sent": 1}

    r = client.get(ROUTES[2], headers=cron_headers())
    assert r.json() == {"success": True, "reminders_sent": 0}


def test_unexpected_failure_is_a_500_with_message(client, monkeypatch):
    def boom(db, **kw):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("conciergeops.routers.cron.run_escalation_sweep", boom)

    r = client.get(ROUTES[1], headers=cron_headers())
    assert r.status_code == 500
    assert r.json() == {"error": "database unavailable"}


def test_cron_token_ok():
    assert cron_token_ok("Bearer abc", "abc")
    assert not cron_token_ok("Bearer abd", "abc")
    assert not cron_token_ok("abc", "abc")
    assert not cron_token_ok(None, "abc")
    assert not cron_token_ok("Bearer ", "")
    assert not cron_token_ok("Bearer abc", None)


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}
