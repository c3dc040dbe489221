# src/workflow_tracker/core/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

Record = dict[str, Any]


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def from_iso(raw: str | None, default: datetime | None = None) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not raw:
        return default if default is not None else utc_now()
    value = datetime.fromisoformat(str(raw))
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


class UserRole(StrEnum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"

    @classmethod
    def from_db(cls, raw: str | None) -> UserRole:
        try:
            return cls(str(raw or "").upper())
        except ValueError:
            return cls.STAFF


class TaskStatus(StrEnum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(str(raw).upper())
        except ValueError:
            return cls.TODO

    @property
    def label(self) -> str:
        if self is TaskStatus.TODO:
            return "To Do"
        return self.value.replace("_", " ").title()


class Priority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        try:
            return cls(str(raw or "").upper())
        except ValueError:
            return cls.MEDIUM


@dataclass(frozen=True, slots=True)
class User:
    id: str
    username: str
    password_hash: str
    name: str
    email: str
    role: UserRole
    first_login: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "username": self.username,
            "password_hash": self.password_hash,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "first_login": self.first_login,
        }

    @classmethod
    def from_record(cls, rec: Record) -> User:
        return cls(
            id=str(rec["id"]),
            username=str(rec.get("username") or ""),
            password_hash=str(rec.get("password_hash") or ""),
            name=str(rec.get("name") or ""),
            email=str(rec.get("email") or ""),
            role=UserRole.from_db(rec.get("role")),
            first_login=bool(rec.get("first_login", True)),
        )


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    name: str
    created_at: datetime
    description: str | None = None

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_iso(self.created_at),
        }

    @classmethod
    def from_record(cls, rec: Record) -> Project:
        return cls(
            id=str(rec["id"]),
            name=str(rec.get("name") or ""),
            description=rec.get("description"),
            created_at=from_iso(rec.get("created_at")),
        )


@dataclass(slots=True)
class Task:
    """
    A unit of work assigned to one staff user.

    Instances handed out by the registry are detached snapshots: changing one
    has no effect until it is passed back through `TaskRegistry.update_task`,
    which checks `version` against the stored record.
    """

    id: str
    title: str
    description: str
    start_date: datetime
    deadline: datetime
    assigned_to_id: str
    created_at: datetime

    collaborator_ids: list[str] = field(default_factory=list)
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    progress: int = 0
    project_id: str | None = None
    notes: str | None = None
    version: int = 1

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "start_date": to_iso(self.start_date),
            "deadline": to_iso(self.deadline),
            "assigned_to_id": self.assigned_to_id,
            "collaborator_ids": list(self.collaborator_ids),
            "status": self.status.value,
            "priority": self.priority.value,
            "notes": self.notes,
            "created_at": to_iso(self.created_at),
            "progress": int(self.progress),
            "version": int(self.version),
        }

    @classmethod
    def from_record(cls, rec: Record) -> Task:
        created_at = from_iso(rec.get("created_at"))
        return cls(
            id=str(rec["id"]),
            project_id=rec.get("project_id") or None,
            title=str(rec.get("title") or ""),
            description=str(rec.get("description") or ""),
            start_date=from_iso(rec.get("start_date"), created_at),
            deadline=from_iso(rec.get("deadline"), created_at),
            assigned_to_id=str(rec.get("assigned_to_id") or ""),
            collaborator_ids=[str(c) for c in rec.get("collaborator_ids") or []],
            status=TaskStatus.from_db(rec.get("status")),
            priority=Priority.from_db(rec.get("priority")),
            notes=rec.get("notes"),
            created_at=created_at,
            progress=int(rec.get("progress") or 0),
            version=int(rec.get("version") or 1),
        )


@dataclass(frozen=True, slots=True)
class Report:
    id: str
    task_id: str
    user_id: str
    created_at: datetime
    content: str
    percentage_completed: int
    issues: str | None = None
    delay_reason: str | None = None

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "user_id": self.user_id,
            "created_at": to_iso(self.created_at),
            "content": self.content,
            "issues": self.issues,
            "delay_reason": self.delay_reason,
            "percentage_completed": int(self.percentage_completed),
        }

    @classmethod
    def from_record(cls, rec: Record) -> Report:
        return cls(
            id=str(rec["id"]),
            task_id=str(rec.get("task_id") or ""),
            user_id=str(rec.get("user_id") or ""),
            created_at=from_iso(rec.get("created_at")),
            content=str(rec.get("content") or ""),
            issues=rec.get("issues") or None,
            delay_reason=rec.get("delay_reason") or None,
            percentage_completed=int(rec.get("percentage_completed") or 0),
        )


@dataclass(frozen=True, slots=True)
class EmailConfig:
    smtp_host: str = "smtp.gmail.com"
    smtp_port: str = "587"
    sender_email: str = ""
    sender_password: str = ""
    enable_notifications: bool = True

    def to_record(self) -> Record:
        return {
            "smtp_host": self.smtp_host,
            "smtp_port": self.smtp_port,
            "sender_email": self.sender_email,
            "sender_password": self.sender_password,
            "enable_notifications": self.enable_notifications,
        }

    @classmethod
    def from_record(cls, rec: Record | None) -> EmailConfig:
        if not rec:
            return cls()
        default = cls()
        return cls(
            smtp_host=str(rec.get("smtp_host") or default.smtp_host),
            smtp_port=str(rec.get("smtp_port") or default.smtp_port),
            sender_email=str(rec.get("sender_email") or ""),
            sender_password=str(rec.get("sender_password") or ""),
            enable_notifications=bool(rec.get("enable_notifications", True)),
        )
