# src/workflow_tracker/stats/insights.py

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from ..core.models import User, UserRole, utc_now
from ..core.policy import is_admin, require_admin
from ..core.ports import KeyValueStore
from ..identity.auth import AuthService
from ..identity.session import Session
from ..identity.users import load_users
from ..tasks.task_registry import TaskRegistry
from .aggregation import DUE_SOON_DAYS, UserStats, compute_stats, stats_by_user


@dataclass(frozen=True, slots=True)
class UserSummary:
    user: User
    stats: UserStats


class InsightsService:
    """Role-scoped views over the aggregation functions."""

    def __init__(
        self,
        store: KeyValueStore,
        auth: AuthService,
        tasks: TaskRegistry,
        *,
        due_soon_days: int = DUE_SOON_DAYS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._auth = auth
        self._tasks = tasks
        self._window = due_soon_days
        self._clock = clock

    def my_stats(self, session: Session, *, as_of: datetime | None = None) -> UserStats:
        actor = self._auth.require_active(session)
        return compute_stats(self._tasks.load_all(), as_of or self._clock(), actor.id, window_days=self._window)

    def dashboard(self, session: Session, *, as_of: datetime | None = None) -> list[UserSummary]:
        """Admins get one card per staff user; staff get only their own."""
        actor = self._auth.require_active(session)
        if is_admin(actor):
            users = [u for u in load_users(self._store) if u.role == UserRole.STAFF]
        else:
            users = [actor]
        stats = stats_by_user(self._tasks.load_all(), users, as_of or self._clock(), window_days=self._window)
        return [UserSummary(user=u, stats=s) for u, s in zip(users, stats)]

    def team_report(self, session: Session, *, as_of: datetime | None = None) -> list[UserSummary]:
        """Every user with at least one assigned task (admin only)."""
        actor = self._auth.require_active(session)
        require_admin(actor, "view team reports")
        users = load_users(self._store)
        stats = stats_by_user(self._tasks.load_all(), users, as_of or self._clock(), window_days=self._window)
        return [UserSummary(user=u, stats=s) for u, s in zip(users, stats) if s.total > 0]
