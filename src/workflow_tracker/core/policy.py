# src/workflow_tracker/core/policy.py

"""
Access control policy.

The `can_*` functions are pure predicates. Each mutating service operation
calls exactly one `require_*` guard, which raises AuthorizationError when the
predicate fails. Nothing here touches storage.
"""

from __future__ import annotations

from collections.abc import Mapping

from ..errors import AuthorizationError, ValidationError
from .models import Task, TaskStatus, User, UserRole

TransitionTable = Mapping[TaskStatus, frozenset[TaskStatus]]

# Any status may move to any status (COMPLETED -> TODO included).
PERMISSIVE_TRANSITIONS: TransitionTable = {
    status: frozenset(TaskStatus) for status in TaskStatus
}


def is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN


def can_mutate(user: User, task: Task) -> bool:
    return is_admin(user) or user.id == task.assigned_to_id


def can_view(user: User, task: Task) -> bool:
    return can_mutate(user, task) or user.id in task.collaborator_ids


def can_report(user: User, task: Task) -> bool:
    # Only the assignee; admins and collaborators cannot report.
    return user.id == task.assigned_to_id


def can_transition(table: TransitionTable, current: TaskStatus, target: TaskStatus) -> bool:
    if current == target:
        return True
    return target in table.get(current, frozenset())


# ---- guards ----


def require_admin(user: User, action: str) -> None:
    if not is_admin(user):
        raise AuthorizationError(f"Only administrators can {action}.")


def require_view(user: User, task: Task) -> None:
    if not can_view(user, task):
        raise AuthorizationError(f"User {user.username} cannot view task {task.id}.")


def require_mutate(user: User, task: Task) -> None:
    if not can_mutate(user, task):
        raise AuthorizationError(f"User {user.username} cannot modify task {task.id}.")


def require_report(user: User, task: Task) -> None:
    if not can_report(user, task):
        raise AuthorizationError(
            f"Only the assignee can submit reports for task {task.id}."
        )


def require_transition(table: TransitionTable, current: TaskStatus, target: TaskStatus) -> None:
    if not can_transition(table, current, target):
        raise ValidationError(f"Status change {current.value} -> {target.value} is not allowed.")
