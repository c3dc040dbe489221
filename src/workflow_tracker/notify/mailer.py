# src/workflow_tracker/notify/mailer.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..core.locks import LockRegistry
from ..core.models import EmailConfig, Project, Task, User
from ..core.policy import require_admin
from ..core.ports import EMAIL_CONFIG, KeyValueStore, Mailer
from ..identity.auth import AuthService
from ..identity.session import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SentMail:
    to: str
    subject: str
    body: str


@dataclass(slots=True)
class SimulatedMailer:
    """
    Mailer that never leaves the process.

    Messages are logged and kept in `outbox`; no SMTP connection is opened.
    """

    outbox: list[SentMail] = field(default_factory=list)

    def send(self, *, to: str, subject: str, body: str) -> None:
        self.outbox.append(SentMail(to=to, subject=subject, body=body))
        logger.info("Simulated email sent to=%s subject=%r", to, subject)


def load_email_config(store: KeyValueStore) -> EmailConfig:
    rows = store.get(EMAIL_CONFIG)
    return EmailConfig.from_record(rows[0] if rows else None)


class Notifier:
    """
    Best-effort task notifications.

    Failures are logged and swallowed here: a notification is a side effect of
    a task write that already happened and must not undo or fail it.
    """

    def __init__(self, store: KeyValueStore, mailer: Mailer) -> None:
        self._store = store
        self._mailer = mailer

    def task_assigned(self, task: Task, assignee: User, project: Project | None = None) -> bool:
        try:
            cfg = load_email_config(self._store)
            if not cfg.enable_notifications:
                logger.debug("Notifications disabled; skipping task_assigned task=%s", task.id)
                return False
            if not assignee.email:
                logger.info("Assignee %s has no email; skipping notification", assignee.id)
                return False

            kind = f"Project Task ({project.name})" if project is not None else "Ad-hoc Task"
            body = (
                f"Hello {assignee.name},\n\n"
                f"You have been assigned a new task.\n"
                f"Type: {kind}\n"
                f"Title: {task.title}\n"
                f"Priority: {task.priority.value}\n"
                f"Deadline: {task.deadline.date().isoformat()}\n"
            )
            self._mailer.send(to=assignee.email, subject=task.title, body=body)
            return True
        except Exception:
            logger.exception("task_assigned notification failed task=%s", task.id)
            return False


class EmailSettingsService:
    """Admin-only access to the SMTP settings record."""

    def __init__(self, store: KeyValueStore, auth: AuthService, locks: LockRegistry, mailer: Mailer) -> None:
        self._store = store
        self._auth = auth
        self._locks = locks
        self._mailer = mailer

    def get_email_config(self, session: Session) -> EmailConfig:
        actor = self._auth.require_active(session)
        require_admin(actor, "view email settings")
        return load_email_config(self._store)

    def save_email_config(self, session: Session, config: EmailConfig) -> EmailConfig:
        actor = self._auth.require_active(session)
        require_admin(actor, "change email settings")
        with self._locks.hold(EMAIL_CONFIG):
            self._store.set(EMAIL_CONFIG, [config.to_record()])
        logger.info("Email settings saved host=%s port=%s by=%s", config.smtp_host, config.smtp_port, actor.id)
        return config

    def send_test(self, session: Session) -> str:
        cfg = self.get_email_config(session)
        if not cfg.sender_email:
            return "Sender email is not configured."
        try:
            self._mailer.send(to=cfg.sender_email, subject="Test connection", body="Test message.")
        except Exception as e:
            logger.warning("Test email failed: %s", e)
            return f"Test email failed: {e}"
        return f"Simulated email to {cfg.sender_email}... Success!"
