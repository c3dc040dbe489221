# src/workflow_tracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/AI/mail/services),
- seeds first-run data and resumes a persisted session.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..config import get_settings
from ..core.locks import LockRegistry
from ..core.models import utc_now
from ..core.policy import PERMISSIVE_TRANSITIONS, TransitionTable
from ..core.ports import KeyValueStore, Mailer, SuggestionClient
from ..core.state import AppState
from ..identity.auth import AuthService
from ..identity.session import SessionStore
from ..identity.users import UserDirectory
from ..llm.client import OpenAISuggestionClient
from ..llm.offline import OfflineSuggestionClient
from ..notify.mailer import EmailSettingsService, Notifier, SimulatedMailer
from ..projects.project_registry import ProjectRegistry
from ..reports.report_ledger import ReportLedger
from ..stats.insights import InsightsService
from ..storage.kv_store import RetryingKeyValueStore, SqliteKeyValueStore
from ..storage.seed import init_storage
from ..tasks.task_registry import TaskRegistry

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Any) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def build_state(
    settings: Any,
    store: KeyValueStore,
    *,
    suggestions: SuggestionClient,
    mailer: Mailer,
    transitions: TransitionTable = PERMISSIVE_TRANSITIONS,
    clock: Callable[[], datetime] = utc_now,
) -> AppState:
    """Wire every service around one store and one lock registry."""
    locks = LockRegistry()
    sessions = SessionStore(store)
    auth = AuthService(store, sessions, locks, clock=clock)
    notifier = Notifier(store, mailer)
    projects = ProjectRegistry(store, auth, locks, clock=clock)
    tasks = TaskRegistry(
        store,
        auth,
        projects,
        locks,
        notifier=notifier,
        suggestions=suggestions,
        transitions=transitions,
        clock=clock,
    )
    return AppState(
        settings=settings,
        store=store,
        locks=locks,
        suggestions=suggestions,
        mailer=mailer,
        sessions=sessions,
        auth=auth,
        users=UserDirectory(store, auth, locks),
        projects=projects,
        tasks=tasks,
        reports=ReportLedger(store, auth, tasks, locks, suggestions=suggestions, clock=clock),
        insights=InsightsService(
            store,
            auth,
            tasks,
            due_soon_days=int(getattr(settings, "due_soon_days", 3)),
            clock=clock,
        ),
        notifier=notifier,
        email_settings=EmailSettingsService(store, auth, locks, mailer),
    )


def create_initial_state(*, settings: Any = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = RetryingKeyValueStore(
        SqliteKeyValueStore(settings.db_path),
        attempts=settings.store_retry_attempts,
        delay_seconds=settings.store_retry_delay_seconds,
    )
    init_storage(store, demo_data=settings.seed_demo_data)

    suggestions: SuggestionClient
    try:
        suggestions = OpenAISuggestionClient(settings)
    except RuntimeError as e:
        # Fallback for demos / local runs without external services.
        logger.info("AI suggestions offline: %s", e)
        suggestions = OfflineSuggestionClient()

    state = build_state(settings, store, suggestions=suggestions, mailer=SimulatedMailer())
    state.session = state.auth.resume()
    if state.session is not None:
        logger.info("Resumed session user=%s", state.session.user.username)
    return state
