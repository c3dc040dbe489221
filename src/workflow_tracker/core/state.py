# src/workflow_tracker/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..identity.auth import AuthService
from ..identity.session import Session, SessionStore
from ..identity.users import UserDirectory
from ..notify.mailer import EmailSettingsService, Notifier
from ..projects.project_registry import ProjectRegistry
from ..reports.report_ledger import ReportLedger
from ..stats.insights import InsightsService
from ..tasks.task_registry import TaskRegistry
from .locks import LockRegistry
from .ports import KeyValueStore, Mailer, SuggestionClient


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    store: KeyValueStore
    locks: LockRegistry
    suggestions: SuggestionClient
    mailer: Mailer

    sessions: SessionStore
    auth: AuthService
    users: UserDirectory
    projects: ProjectRegistry
    tasks: TaskRegistry
    reports: ReportLedger
    insights: InsightsService
    notifier: Notifier
    email_settings: EmailSettingsService

    # Console connector's signed-in session; services never read it implicitly.
    session: Session | None = None
    lock: threading.RLock = field(default_factory=threading.RLock)
