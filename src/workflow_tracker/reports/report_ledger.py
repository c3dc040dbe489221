# src/workflow_tracker/reports/report_ledger.py

"""
Append-only progress reports.

A report is the only path that moves a task's progress from the assignee's
side: accepting one sets task.progress to the reported percentage and, at
100%, completes the task. Reports are never edited or removed. Percentages
are not required to grow from one report to the next.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from ..core.locks import LockRegistry, task_key
from ..core.models import Report, TaskStatus, utc_now
from ..core.policy import require_report, require_view
from ..core.ports import REPORTS, TASKS, KeyValueStore, SuggestionClient
from ..errors import NotFoundError, TerminalStateError, ValidationError
from ..identity.auth import AuthService
from ..identity.session import Session
from ..tasks.task_registry import TaskRegistry

logger = logging.getLogger(__name__)


def format_report_line(report: Report) -> str:
    return (
        f"Date: {report.created_at.isoformat()}, "
        f"Content: {report.content}, "
        f"Issues: {report.issues or 'none'}"
    )


class ReportLedger:
    def __init__(
        self,
        store: KeyValueStore,
        auth: AuthService,
        tasks: TaskRegistry,
        locks: LockRegistry,
        *,
        suggestions: SuggestionClient | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._auth = auth
        self._tasks = tasks
        self._locks = locks
        self._suggestions = suggestions
        self._clock = clock

    def _reports_for(self, task_id: str) -> list[Report]:
        reports = [Report.from_record(r) for r in self._store.get(REPORTS) if str(r.get("task_id")) == task_id]
        # Later appends win ties on created_at.
        reports.reverse()
        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports

    def submit_report(
        self,
        session: Session,
        task_id: str,
        *,
        content: str,
        percentage: int,
        issues: str | None = None,
        delay_reason: str | None = None,
    ) -> Report:
        actor = self._auth.require_active(session)

        content = (content or "").strip()
        if not content:
            raise ValidationError("Report content is required.")
        if isinstance(percentage, bool) or not isinstance(percentage, int) or not 0 <= percentage <= 100:
            raise ValidationError("percentage must be an integer between 0 and 100")

        with self._locks.hold(task_key(task_id), REPORTS, TASKS):
            task = self._tasks.find(task_id)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found.")
            require_report(actor, task)
            if task.status == TaskStatus.COMPLETED:
                raise TerminalStateError(f"Task {task_id} is completed; no further reports are accepted.")

            report = Report(
                id=uuid.uuid4().hex,
                task_id=task.id,
                user_id=actor.id,
                created_at=self._clock(),
                content=content,
                issues=(issues or "").strip() or None,
                delay_reason=(delay_reason or "").strip() or None,
                percentage_completed=percentage,
            )

            previous = self._store.get(REPORTS)
            self._store.set(REPORTS, [*previous, report.to_record()])

            status = TaskStatus.COMPLETED if percentage == 100 else task.status
            try:
                saved = self._tasks.replace(
                    dataclasses.replace(task, progress=percentage, status=status),
                    expected_version=task.version,
                )
            except Exception:
                logger.exception("Task update failed after report %s; removing the report", report.id)
                self._store.set(REPORTS, previous)
                raise

        logger.info(
            "Report submitted id=%s task=%s by=%s progress=%s status=%s",
            report.id, task_id, actor.id, percentage, saved.status,
        )
        return report

    def list_reports(self, session: Session, task_id: str) -> list[Report]:
        """Reports of one task, most recent first."""
        actor = self._auth.require_active(session)
        task = self._tasks.find(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found.")
        require_view(actor, task)
        return self._reports_for(task_id)

    def summarize_reports(self, session: Session, task_id: str) -> str:
        reports = self.list_reports(session, task_id)
        if not reports:
            return "No reports yet."
        if self._suggestions is None:
            return "AI suggestions are not configured."
        return self._suggestions.summarize([format_report_line(r) for r in reports])
