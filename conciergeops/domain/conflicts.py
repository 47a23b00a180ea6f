# conciergeops/domain/conflicts.py
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from itertools import combinations
from typing import Iterable, Mapping, Optional

# Two tasks of the same worker closer than this are reported.
CONFLICT_WINDOW = timedelta(hours=2)


@dataclass(frozen=True)
class TaskSlot:
    id: int
    task_type: str
    scheduled_at: datetime
    assigned_to: Optional[int]


@dataclass(frozen=True)
class Conflict:
    task1_id: int
    task2_id: int
    task1_type: str
    task2_type: str
    assignee_id: int
    assignee_name: str
    date: str
    details: str

    def as_dict(self) -> dict:
        return {
            "task1_id": self.task1_id,
            "task2_id": self.task2_id,
            "task1_type": self.task1_type,
            "task2_type": self.task2_type,
            "assignee_id": self.assignee_id,
            "assignee_name": self.assignee_name,
            "date": self.date,
            "details": self.details,
        }


def date_label(dt: datetime) -> str:
    """e.g. 'Monday 19 October'"""
    return f"{dt:%A} {dt.day} {dt:%B}"


def pair_key(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a <= b else (b, a)


def too_close(a: datetime, b: datetime, window: timedelta = CONFLICT_WINDOW) -> bool:
    return abs(a - b) < window


def find_conflicts(
    slots: Iterable[TaskSlot],
    names: Mapping[int, str],
    *,
    unknown_label: str = "Unknown worker",
    window: timedelta = CONFLICT_WINDOW,
) -> list[Conflict]:
    """
    Pairwise proximity check per assignee.

    Quadratic in each worker's task count for the window, which stays small
    (days to weeks of missions per worker). Unassigned slots are ignored.
    """
    by_assignee: dict[int, list[TaskSlot]] = defaultdict(list)
    for s in slots:
        if s.assigned_to is None:
            continue
        by_assignee[int(s.assigned_to)].append(s)

    out: list[Conflict] = []
    seen: set[tuple[int, int]] = set()

    for assignee_id in sorted(by_assignee):
        group = sorted(by_assignee[assignee_id], key=lambda s: (s.scheduled_at, s.id))
        if len(group) < 2:
            continue

        name = names.get(assignee_id) or unknown_label
        for first, second in combinations(group, 2):
            if not too_close(first.scheduled_at, second.scheduled_at, window):
                continue

            key = pair_key(first.id, second.id)
            if key in seen:
                continue
            seen.add(key)

            label = date_label(first.scheduled_at)
            out.append(
                Conflict(
                    task1_id=first.id,
                    task2_id=second.id,
                    task1_type=first.task_type,
                    task2_type=second.task_type,
                    assignee_id=assignee_id,
                    assignee_name=name,
                    date=label,
                    details=f"{name} has 2 missions on {label}",
                )
            )

    return out
