from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from conciergeops.domain.severity import (
    ESCALATION_RULES,
    IllegalTransition,
    assert_transition,
    due_rule,
    next_severity,
    severity_rank,
)

NOW = datetime(2026, 10, 19, 12, 0)


def test_rules_only_move_one_step_up():
    for rule in ESCALATION_RULES:
        assert severity_rank(rule.to_severity) == severity_rank(rule.from_severity) + 1
        assert_transition(rule.from_severity, rule.to_severity)


def test_illegal_transitions_rejected():
    for a, b in [("minor", "critical"), ("medium", "minor"), ("critical", "medium"), ("minor", "minor"),
                 ("critical", "critical"), ("minor", "urgent")]:
        with pytest.raises(IllegalTransition):
            assert_transition(a, b)


def test_next_severity():
    assert next_severity("minor") == "medium"
    assert next_severity("medium") == "critical"
    assert next_severity("critical") is None


def test_minor_needs_strictly_more_than_48h_and_open():
    assert due_rule(severity="minor", status="open", opened_at=NOW - timedelta(hours=48), now=NOW) is None
    rule = due_rule(severity="minor", status="open", opened_at=NOW - timedelta(hours=48, seconds=1), now=NOW)
    assert rule is not None and rule.to_severity == "medium"
    assert due_rule(severity="minor", status="in_progress", opened_at=NOW - timedelta(hours=100), now=NOW) is None


def test_medium_escalates_while_open_or_in_progress():
    old = NOW - timedelta(hours=73)
    assert due_rule(severity="medium", status="open", opened_at=old, now=NOW).to_severity == "critical"
    assert due_rule(severity="medium", status="in_progress", opened_at=old, now=NOW).to_severity == "critical"
    assert due_rule(severity="medium", status="open", opened_at=NOW - timedelta(hours=47), now=NOW) is None


def test_terminal_and_top_severity_never_escalate():
    ancient = NOW - timedelta(days=30)
    for status in ("resolved", "closed"):
        assert due_rule(severity="minor", status=status, opened_at=ancient, now=NOW) is None
        assert due_rule(severity="medium", status=status, opened_at=ancient, now=NOW) is None
    assert due_rule(severity="critical", status="open", opened_at=ancient, now=NOW) is None
