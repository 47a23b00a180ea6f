# conciergeops/domain/severity.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

# -----------------------------------------------------------------------------
# Incident severity state machine
# -----------------------------------------------------------------------------
# Severity only ever moves one step up SEVERITY_ORDER. Every legal step is a row
# in ESCALATION_RULES; anything else (skip, regress, self-loop) is rejected by
# assert_transition().
#
# Status gates everything: only ACTIVE_STATUSES are eligible, TERMINAL_STATUSES
# are never touched by automation.
# -----------------------------------------------------------------------------

SEVERITY_ORDER = ("minor", "medium", "critical")

INCIDENT_STATUSES = ("open", "in_progress", "resolved", "closed")
ACTIVE_STATUSES = ("open", "in_progress")
TERMINAL_STATUSES = ("resolved", "closed")


class IllegalTransition(ValueError):
    pass


@dataclass(frozen=True)
class EscalationRule:
    from_severity: str
    to_severity: str
    min_age: timedelta
    statuses: tuple[str, ...]

    @property
    def label(self) -> str:
        return f"{self.from_severity}->{self.to_severity}"

    def cutoff(self, now: datetime) -> datetime:
        """Incidents opened strictly before this instant are old enough."""
        return now - self.min_age

    def matches(self, *, severity: str, status: str, opened_at: datetime, now: datetime) -> bool:
        return (
            severity == self.from_severity
            and status in self.statuses
            and (now - opened_at) > self.min_age
        )


# Processed in this order by the escalation sweep.
ESCALATION_RULES: tuple[EscalationRule, ...] = (
    EscalationRule(
        from_severity="minor",
        to_severity="medium",
        min_age=timedelta(hours=48),
        statuses=("open",),
    ),
    EscalationRule(
        from_severity="medium",
        to_severity="critical",
        min_age=timedelta(hours=72),
        statuses=("open", "in_progress"),
    ),
)


def severity_rank(severity: str) -> int:
    try:
        return SEVERITY_ORDER.index(severity)
    except ValueError:
        raise IllegalTransition(f"unknown severity={severity!r}")


def is_terminal(status: str) -> bool:
    return (status or "").strip().lower() in TERMINAL_STATUSES


def rule_for(from_severity: str) -> EscalationRule | None:
    for rule in ESCALATION_RULES:
        if rule.from_severity == from_severity:
            return rule
    return None


def next_severity(severity: str) -> str | None:
    """The severity one step up, or None when already at the top."""
    rule = rule_for(severity)
    return rule.to_severity if rule else None


def assert_transition(from_severity: str, to_severity: str) -> None:
    """Raise IllegalTransition unless (from, to) is a row of ESCALATION_RULES."""
    severity_rank(from_severity)
    severity_rank(to_severity)
    rule = rule_for(from_severity)
    if rule is None or rule.to_severity != to_severity:
        raise IllegalTransition(f"illegal severity transition {from_severity} -> {to_severity}")


def due_rule(*, severity: str, status: str, opened_at: datetime, now: datetime) -> EscalationRule | None:
    """The rule that fires for this incident right now, if any."""
    if is_terminal(status):
        return None
    rule = rule_for(severity)
    if rule and rule.matches(severity=severity, status=status, opened_at=opened_at, now=now):
        return rule
    return None
