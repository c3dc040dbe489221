# tests/conftest.py

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from workflow_tracker.cli.bootstrap import build_state
from workflow_tracker.core.models import Task, User
from workflow_tracker.core.ports import USERS
from workflow_tracker.core.state import AppState
from workflow_tracker.identity.passwords import hash_password
from workflow_tracker.identity.session import Session
from workflow_tracker.notify.mailer import SimulatedMailer
from workflow_tracker.storage.kv_store import MemoryKeyValueStore
from workflow_tracker.storage.seed import DEFAULT_ACCOUNTS, init_storage

from .fakes import FakeClock, FakeSuggestionClient

NOW = datetime(2024, 6, 10, 9, 0, tzinfo=UTC)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the services.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="workflow-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "workflow.sqlite3",
        store_retry_attempts=1,
        store_retry_delay_seconds=0.0,
        seed_demo_data=False,
        due_soon_days=3,
        llm_api_key=None,
        llm_base_url="",
        llm_models=[],
        extra_headers={},
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture()
def store() -> MemoryKeyValueStore:
    """
    Store seeded with the default accounts and empty collections.

    Accounts are hashed with few iterations to keep the suite fast;
    verification reads the iteration count from the stored hash.
    """
    s = MemoryKeyValueStore()
    s.set(
        USERS,
        [
            User(
                id=uid,
                username=username,
                password_hash=hash_password(password, iterations=1_000),
                name=name,
                email=email,
                role=role,
                first_login=True,
            ).to_record()
            for uid, username, password, name, email, role in DEFAULT_ACCOUNTS
        ],
    )
    init_storage(s, demo_data=False, now=NOW)
    return s


@pytest.fixture()
def suggestions() -> FakeSuggestionClient:
    return FakeSuggestionClient(next_text="Looks on track.")


@pytest.fixture()
def mailer() -> SimulatedMailer:
    return SimulatedMailer()


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    store: MemoryKeyValueStore,
    suggestions: FakeSuggestionClient,
    mailer: SimulatedMailer,
    clock: FakeClock,
) -> AppState:
    """AppState wired with deterministic fakes over an in-memory store."""
    return build_state(settings, store, suggestions=suggestions, mailer=mailer, clock=clock)


@pytest.fixture()
def sign_in(state: AppState) -> Callable[[str, str], Session]:
    """Log in and complete the mandatory first-login password change."""

    def _sign_in(username: str, password: str) -> Session:
        session = state.auth.login(username, password)
        return state.auth.change_password(session, password, password + "-new")

    return _sign_in


@pytest.fixture()
def admin(sign_in) -> Session:
    return sign_in("admin", "admin123")


@pytest.fixture()
def staff1(sign_in) -> Session:
    return sign_in("staff1", "password123")


@pytest.fixture()
def staff2(sign_in) -> Session:
    return sign_in("staff2", "password123")


@pytest.fixture()
def staff3(sign_in) -> Session:
    return sign_in("staff3", "password123")


@pytest.fixture()
def make_task(state: AppState, admin: Session) -> Callable[..., Task]:
    """Create a task as admin; defaults: assigned to staff1 (u2), due 2024-06-20."""

    def _make(**overrides) -> Task:
        fields = {
            "title": "Write user guide",
            "description": "Cover login and reports.",
            "assigned_to_id": "u2",
            "deadline": "2024-06-20",
        }
        fields.update(overrides)
        return state.tasks.create_task(admin, **fields)

    return _make
