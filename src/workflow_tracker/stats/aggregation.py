# src/workflow_tracker/stats/aggregation.py

"""
Per-user task statistics.

Everything here is computed on demand from the full task list; nothing is
cached or stored. A task counts towards the user it is assigned to.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from ..core.models import Task, TaskStatus, User

DUE_SOON_DAYS = 3


def as_utc(value: datetime) -> datetime:
    """Naive timestamps are read as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True, slots=True)
class UserStats:
    user_id: str
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    overdue: int = 0
    due_soon: int = 0

    @property
    def completion_rate(self) -> int:
        """Completed share in whole percent; 0 when the user has no tasks."""
        if self.total == 0:
            return 0
        return round_half_up(self.completed / self.total * 100)


def is_overdue(task: Task, as_of: datetime) -> bool:
    return task.status != TaskStatus.COMPLETED and as_utc(task.deadline) < as_utc(as_of)


def is_due_soon(task: Task, as_of: datetime, *, window_days: int = DUE_SOON_DAYS) -> bool:
    if task.status == TaskStatus.COMPLETED:
        return False
    start, deadline = as_utc(as_of), as_utc(task.deadline)
    return start <= deadline <= start + timedelta(days=window_days)


def compute_stats(
    tasks: Iterable[Task],
    as_of: datetime,
    user_id: str,
    *,
    window_days: int = DUE_SOON_DAYS,
) -> UserStats:
    as_of = as_utc(as_of)
    total = completed = in_progress = overdue = due_soon = 0
    for task in tasks:
        if task.assigned_to_id != user_id:
            continue
        total += 1
        if task.status == TaskStatus.COMPLETED:
            completed += 1
        elif task.status == TaskStatus.IN_PROGRESS:
            in_progress += 1
        if is_overdue(task, as_of):
            overdue += 1
        if is_due_soon(task, as_of, window_days=window_days):
            due_soon += 1
    return UserStats(
        user_id=user_id,
        total=total,
        completed=completed,
        in_progress=in_progress,
        overdue=overdue,
        due_soon=due_soon,
    )


def stats_by_user(
    tasks: Iterable[Task],
    users: Iterable[User],
    as_of: datetime,
    *,
    window_days: int = DUE_SOON_DAYS,
) -> list[UserStats]:
    task_list = list(tasks)
    return [compute_stats(task_list, as_of, u.id, window_days=window_days) for u in users]
