# src/workflow_tracker/tasks/task_registry.py

"""
Task registry: creation, full-record updates, queries and the status state machine.

State machine:
- initial state TODO with progress 0
- any status may follow any status under the default (permissive) table;
  a stricter table can be injected
- entering COMPLETED forces progress to 100; nothing else couples the two

Concurrency:
- mutations of one task are serialized on the "task:<id>" lock
- every stored task carries `version`; a write against an older version is
  rejected with ConflictError instead of silently winning
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from typing import Any

from ..core.locks import LockRegistry, task_key
from ..core.models import Priority, Project, Task, TaskStatus, User, UserRole, utc_now
from ..core.policy import (
    PERMISSIVE_TRANSITIONS,
    TransitionTable,
    can_view,
    require_admin,
    require_mutate,
    require_transition,
    require_view,
)
from ..core.ports import PROJECTS, TASKS, KeyValueStore, SuggestionClient
from ..errors import ConflictError, NotFoundError, ValidationError
from ..identity.auth import AuthService
from ..identity.session import Session
from ..identity.users import load_users
from ..notify.mailer import Notifier
from ..projects.project_registry import ProjectRegistry

logger = logging.getLogger(__name__)

DateLike = datetime | date | str


def coerce_datetime(value: DateLike | None, field_name: str) -> datetime | None:
    """Accept datetimes, dates (midnight UTC) and ISO strings."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    try:
        parsed = datetime.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"{field_name} is not a valid date: {value!r}") from e
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _clean(text: str | None) -> str:
    return (text or "").strip()


@dataclass(frozen=True, slots=True)
class TaskFilter:
    status: TaskStatus | None = None
    search: str | None = None
    project_id: str | None = None
    assigned_to_id: str | None = None

    def matches(self, task: Task) -> bool:
        if self.status is not None and task.status != self.status:
            return False
        if self.search and self.search.lower() not in task.title.lower():
            return False
        if self.project_id is not None and task.project_id != self.project_id:
            return False
        if self.assigned_to_id is not None and task.assigned_to_id != self.assigned_to_id:
            return False
        return True


SUGGEST_PROMPT = (
    'I am creating a task management system. The task title is "{title}". '
    "Please generate a concise but professional description and a checklist of "
    "3-5 subtasks for this job. Format it as Markdown."
)


class TaskRegistry:
    def __init__(
        self,
        store: KeyValueStore,
        auth: AuthService,
        projects: ProjectRegistry,
        locks: LockRegistry,
        *,
        notifier: Notifier | None = None,
        suggestions: SuggestionClient | None = None,
        transitions: TransitionTable = PERMISSIVE_TRANSITIONS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._auth = auth
        self._projects = projects
        self._locks = locks
        self._notifier = notifier
        self._suggestions = suggestions
        self._transitions = transitions
        self._clock = clock

    # ---- storage helpers ----

    def load_all(self) -> list[Task]:
        return [Task.from_record(r) for r in self._store.get(TASKS)]

    def find(self, task_id: str) -> Task | None:
        for rec in self._store.get(TASKS):
            if str(rec.get("id")) == task_id:
                return Task.from_record(rec)
        return None

    def _require(self, task_id: str) -> Task:
        task = self.find(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found.")
        return task

    def _append(self, task: Task) -> None:
        with self._locks.hold(TASKS):
            records = self._store.get(TASKS)
            records.append(task.to_record())
            self._store.set(TASKS, records)

    def replace(self, task: Task, *, expected_version: int) -> Task:
        """
        Store `task` over the record with the same id and bump its version.

        Callers hold "task:<id>" and have run every check already.
        """
        with self._locks.hold(TASKS):
            records = self._store.get(TASKS)
            idx = next((i for i, r in enumerate(records) if str(r.get("id")) == task.id), None)
            if idx is None:
                raise NotFoundError(f"Task {task.id} not found.")
            current_version = int(records[idx].get("version") or 1)
            if current_version != expected_version:
                raise ConflictError(
                    f"Task {task.id} was changed by someone else "
                    f"(version {current_version}, expected {expected_version})."
                )
            saved = dataclasses.replace(task, version=current_version + 1)
            records[idx] = saved.to_record()
            self._store.set(TASKS, records)
        return saved

    # ---- validation ----

    @staticmethod
    def _validate_fields(
        title: str,
        description: str,
        assigned_to_id: str,
        start_date: datetime | None,
        deadline: datetime | None,
    ) -> datetime:
        """Check the required fields; returns the deadline."""
        if not title:
            raise ValidationError("title is required")
        if not description:
            raise ValidationError("description is required")
        if not assigned_to_id:
            raise ValidationError("assignee is required")
        if deadline is None:
            raise ValidationError("deadline is required")
        if start_date is not None and deadline < start_date:
            raise ValidationError("deadline must not be earlier than the start date")
        return deadline

    def _build_task(
        self,
        *,
        title: str,
        description: str,
        assigned_to_id: str,
        deadline: DateLike | None,
        start_date: DateLike | None = None,
        collaborator_ids: Iterable[str] = (),
        priority: Priority | str = Priority.MEDIUM,
        notes: str | None = None,
        project_id: str | None = None,
        check_project: bool = True,
    ) -> tuple[Task, User]:
        now = self._clock()
        title = _clean(title)
        description = _clean(description)
        assigned_to_id = _clean(assigned_to_id)
        start = coerce_datetime(start_date, "start date") or datetime.combine(now.date(), time.min, tzinfo=UTC)
        end = self._validate_fields(
            title, description, assigned_to_id, start, coerce_datetime(deadline, "deadline")
        )

        try:
            prio = Priority(str(priority).upper())
        except ValueError as e:
            raise ValidationError(f"Unknown priority: {priority}") from e

        users = {u.id: u for u in load_users(self._store)}
        assignee = users.get(assigned_to_id)
        if assignee is None:
            raise NotFoundError(f"Assignee {assigned_to_id} not found.")
        if assignee.role != UserRole.STAFF:
            raise ValidationError("Tasks can only be assigned to staff users.")

        collaborators: list[str] = []
        for cid in collaborator_ids:
            cid = _clean(cid)
            if not cid or cid == assigned_to_id or cid in collaborators:
                continue
            if cid not in users:
                raise NotFoundError(f"Collaborator {cid} not found.")
            collaborators.append(cid)

        project_id = _clean(project_id) or None
        if check_project and project_id is not None and self._projects.find(project_id) is None:
            raise NotFoundError(f"Project {project_id} not found.")

        task = Task(
            id=uuid.uuid4().hex,
            project_id=project_id,
            title=title,
            description=description,
            start_date=start,
            deadline=end,
            assigned_to_id=assigned_to_id,
            collaborator_ids=collaborators,
            status=TaskStatus.TODO,
            priority=prio,
            notes=_clean(notes) or None,
            created_at=now,
            progress=0,
            version=1,
        )
        return task, assignee

    def _notify(self, task: Task, assignee: User, project: Project | None) -> None:
        if self._notifier is not None:
            self._notifier.task_assigned(task, assignee, project)

    # ---- public API ----

    def create_task(
        self,
        session: Session,
        *,
        title: str,
        description: str,
        assigned_to_id: str,
        deadline: DateLike | None,
        start_date: DateLike | None = None,
        collaborator_ids: Iterable[str] = (),
        priority: Priority | str = Priority.MEDIUM,
        notes: str | None = None,
        project_id: str | None = None,
    ) -> Task:
        """
        Create a task assigned to a staff user.

        The start date defaults to today (midnight UTC). The assignee is
        dropped from `collaborator_ids` if listed there.
        """
        actor = self._auth.require_active(session)
        require_admin(actor, "create tasks")

        task, assignee = self._build_task(
            title=title,
            description=description,
            assigned_to_id=assigned_to_id,
            deadline=deadline,
            start_date=start_date,
            collaborator_ids=collaborator_ids,
            priority=priority,
            notes=notes,
            project_id=project_id,
        )
        self._append(task)
        logger.info(
            "Task created id=%s title=%r assignee=%s project=%s by=%s",
            task.id, task.title, task.assigned_to_id, task.project_id, actor.id,
        )
        project = self._projects.find(task.project_id) if task.project_id else None
        self._notify(task, assignee, project)
        return task

    def create_task_in_new_project(
        self,
        session: Session,
        *,
        project_name: str,
        project_description: str | None = None,
        **fields: Any,
    ) -> tuple[Project, Task]:
        """
        Create a project and its first task as one unit.

        Everything is validated before either record is written; if the task
        write fails the project is removed again.
        """
        actor = self._auth.require_active(session)
        require_admin(actor, "create tasks")
        if not _clean(project_name):
            raise ValidationError("project name is required")

        project = self._projects.build(project_name, project_description)
        fields.pop("project_id", None)
        task, assignee = self._build_task(**fields, project_id=project.id, check_project=False)

        with self._locks.hold(PROJECTS, TASKS):
            self._projects.insert(project)
            try:
                self._append(task)
            except Exception:
                logger.exception("Task write failed; rolling back project %s", project.id)
                self._projects.discard(project.id)
                raise

        logger.info("Project %s created with first task %s by=%s", project.id, task.id, actor.id)
        self._notify(task, assignee, project)
        return project, task

    def get_task(self, session: Session, task_id: str) -> Task:
        actor = self._auth.require_active(session)
        task = self._require(task_id)
        require_view(actor, task)
        return task

    def list_tasks(self, session: Session, task_filter: TaskFilter | None = None) -> list[Task]:
        actor = self._auth.require_active(session)
        flt = task_filter or TaskFilter()
        return [t for t in self.load_all() if can_view(actor, t) and flt.matches(t)]

    def update_task(self, session: Session, task: Task) -> Task:
        """
        Replace the stored record with `task` (matched by id).

        The caller must pass the version it read; `created_at` is kept from
        the stored record.
        """
        actor = self._auth.require_active(session)

        with self._locks.hold(task_key(task.id)):
            stored = self._require(task.id)
            require_mutate(actor, stored)
            if task.version != stored.version:
                raise ConflictError(
                    f"Task {task.id} was changed by someone else "
                    f"(version {stored.version}, you have {task.version})."
                )

            title, description = _clean(task.title), _clean(task.description)
            assigned_to_id = _clean(task.assigned_to_id)
            start = coerce_datetime(task.start_date, "start date") or stored.start_date
            end = self._validate_fields(
                title, description, assigned_to_id, start, coerce_datetime(task.deadline, "deadline")
            )
            if not 0 <= int(task.progress) <= 100:
                raise ValidationError("progress must be between 0 and 100")
            try:
                status = TaskStatus(str(task.status).upper())
            except ValueError as e:
                raise ValidationError(f"Unknown status: {task.status}") from e
            require_transition(self._transitions, stored.status, status)
            try:
                priority = Priority(str(task.priority).upper())
            except ValueError as e:
                raise ValidationError(f"Unknown priority: {task.priority}") from e

            progress = 100 if status == TaskStatus.COMPLETED else int(task.progress)
            collaborators = list(dict.fromkeys(c for c in task.collaborator_ids if c and c != assigned_to_id))
            updated = dataclasses.replace(
                task,
                title=title,
                description=description,
                assigned_to_id=assigned_to_id,
                start_date=start,
                deadline=end,
                status=status,
                priority=priority,
                collaborator_ids=collaborators,
                progress=progress,
                created_at=stored.created_at,
            )
            saved = self.replace(updated, expected_version=stored.version)

        logger.info(
            "Task updated id=%s status=%s progress=%s version=%s by=%s",
            saved.id, saved.status, saved.progress, saved.version, actor.id,
        )
        return saved

    def set_status(
        self,
        session: Session,
        task_id: str,
        status: TaskStatus | str,
        *,
        expected_version: int | None = None,
    ) -> Task:
        actor = self._auth.require_active(session)
        try:
            target = TaskStatus(str(status).upper())
        except ValueError as e:
            raise ValidationError(f"Unknown status: {status}") from e

        with self._locks.hold(task_key(task_id)):
            stored = self._require(task_id)
            require_mutate(actor, stored)
            if expected_version is not None and expected_version != stored.version:
                raise ConflictError(
                    f"Task {task_id} was changed by someone else "
                    f"(version {stored.version}, you have {expected_version})."
                )
            require_transition(self._transitions, stored.status, target)

            progress = 100 if target == TaskStatus.COMPLETED else stored.progress
            saved = self.replace(
                dataclasses.replace(stored, status=target, progress=progress),
                expected_version=stored.version,
            )

        logger.info("Task status id=%s %s -> %s by=%s", task_id, stored.status, target, actor.id)
        return saved

    def suggest_details(self, session: Session, title: str, context: str | None = None) -> str:
        """Ask the AI collaborator for a draft description; never raises on AI failure."""
        self._auth.require_active(session)
        title = _clean(title)
        if not title:
            raise ValidationError("Please enter a title first.")
        if self._suggestions is None:
            return "AI suggestions are not configured."
        label = f"{title} ({context})" if context else title
        return self._suggestions.suggest(SUGGEST_PROMPT.format(title=label))
