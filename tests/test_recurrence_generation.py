from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import select

from conciergeops.domain.recurrence import weekday_number
from conciergeops.models import RecurrenceTemplate, ScheduledTask
from conciergeops.services.recurrence_service import generate_due_occurrences
from factories import mk_member, mk_org, mk_property, mk_template

# a Monday, day_of_week=1
NOW = datetime(2026, 10, 19, 6, 0)


def _tasks(db) -> list[ScheduledTask]:
    db.expire_all()
    return list(db.scalars(select(ScheduledTask).order_by(ScheduledTask.id)).all())


def test_weekly_template_materializes_one_task_at_its_time(db_session):
    org = mk_org(db_session)
    prop = mk_property(db_session, org)
    worker = mk_member(db_session, org, "marie@acme.local", role="operator", display_name="Marie")
    tpl = mk_template(
        db_session,
        org,
        prop,
        day_of_week=1,
        scheduled_time="09:00",
        priority="high",
        assigned_to=worker.id,
        notes="Deep clean",
    )

    res = generate_due_occurrences(db_session, now=NOW)
    assert res.generated == 1
    assert res.failed == 0

    tasks = _tasks(db_session)
    assert len(tasks) == 1
    t = tasks[0]
    assert t.scheduled_at == datetime(2026, 10, 19, 9, 0)
    assert t.status == "todo"
    assert t.priority == "high"
    assert t.task_type == "cleaning"
    assert t.assigned_to == worker.id
    assert t.property_id == prop.id
    assert t.recurrence_id == tpl.id
    assert t.notes == "[auto-recurrence] Deep clean"

    db_session.refresh(tpl)
    assert tpl.last_generated_at == NOW


def test_second_run_same_day_generates_nothing(db_session):
    org = mk_org(db_session)
    prop = mk_property(db_session, org)
    mk_template(db_session, org, prop, day_of_week=weekday_number(NOW))

    first = generate_due_occurrences(db_session, now=NOW)
    second = generate_due_occurrences(db_session, now=NOW + timedelta(hours=10))

    assert first.generated == 1
    assert second.generated == 0
    assert second.skipped == 1
    assert len(_tasks(db_session)) == 1


def test_weekly_template_not_due_on_other_weekday(db_session):
    org = mk_org(db_session)
    prop = mk_property(db_session, org)
    mk_template(db_session, org, prop, day_of_week=(weekday_number(NOW) + 1) % 7)

    res = generate_due_occurrences(db_session, now=NOW)
    assert res.generated == 0
    assert _tasks(db_session) == []


def test_notes_marker_without_template_notes(db_session):
    org = mk_org(db_session)
    prop = mk_property(db_session, org)
    mk_template(db_session, org, prop, day_of_week=weekday_number(NOW), notes=None)

    generate_due_occurrences(db_session, now=NOW)
    assert _tasks(db_session)[0].notes == "[auto-recurrence]"


def test_biweekly_waits_fourteen_days(db_session):
    org = mk_org(db_session)
    prop = mk_property(db_session, org)
    early = mk_template(db_session, org, prop, frequency="biweekly", day_of_week=None,
                        last_generated_at=NOW - timedelta(days=13))
    ready = mk_template(db_session, org, prop, frequency="biweekly", day_of_week=None,
                        last_generated_at=NOW - timedelta(days=14))
    never = mk_template(db_session, org, prop, frequency="biweekly", day_of_week=None,
                        last_generated_at=None)

    res = generate_due_occurrences(db_session, now=NOW)
    assert res.generated == 2

    by_template = {t.recurrence_id for t in _tasks(db_session)}
    assert by_template == {ready.id, never.id}
    assert early.id not in by_template


def test_inactive_template_is_ignored(db_session):
    org = mk_org(db_session)
    prop = mk_property(db_session, org)
    mk_template(db_session, org, prop, day_of_week=weekday_number(NOW), active=False)

    res = generate_due_occurrences(db_session, now=NOW)
    assert res.generated == 0
    assert res.skipped == 0
    assert _tasks(db_session) == []


def test_one_broken_template_does_not_stop_the_sweep(db_session):
    org = mk_org(db_session)
    prop = mk_property(db_session, org)
    broken = mk_template(db_session, org, prop, day_of_week=weekday_number(NOW), scheduled_time="99:99")
    good = mk_template(db_session, org, prop, day_of_week=weekday_number(NOW))

    res = generate_due_occurrences(db_session, now=NOW)
    assert res.generated == 1
    assert res.failed == 1

    tasks = _tasks(db_session)
    assert [t.recurrence_id for t in tasks] == [good.id]

    # the failed template keeps no witness, so the next sweep retries it
    assert db_session.get(RecurrenceTemplate, broken.id).last_generated_at is None


def test_sweep_covers_every_org(db_session):
    org_a = mk_org(db_session, "org-a")
    org_b = mk_org(db_session, "org-b")
    mk_template(db_session, org_a, mk_property(db_session, org_a), day_of_week=weekday_number(NOW))
    mk_template(db_session, org_b, mk_property(db_session, org_b), day_of_week=weekday_number(NOW))

    res = generate_due_occurrences(db_session, now=NOW)
    assert res.generated == 2
    assert sorted(t.org_id for t in _tasks(db_session)) == sorted([org_a.id, org_b.id])
