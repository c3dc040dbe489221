# src/workflow_tracker/identity/session.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from ..core.models import User, from_iso, to_iso, utc_now
from ..core.ports import CURRENT_SESSION, USERS, KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Session:
    """
    Explicit session value passed into every service call.

    `user` is the snapshot taken at login; services re-resolve the user from
    storage on each call, so a deleted user or a pending password change is
    noticed immediately.
    """

    user: User
    started_at: datetime

    @property
    def user_id(self) -> str:
        return self.user.id


class SessionStore:
    """
    Persists which user is signed in, so a restart resumes the session.

    The credential hash is never written to the session collection.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def get(self) -> User | None:
        rows = self._store.get(CURRENT_SESSION)
        if not rows:
            return None
        user_id = str(rows[0].get("user_id") or "")
        for rec in self._store.get(USERS):
            if str(rec.get("id")) == user_id:
                return User.from_record(rec)
        logger.info("Stored session points at missing user id=%s; ignoring it.", user_id)
        return None

    def started_at(self) -> datetime | None:
        rows = self._store.get(CURRENT_SESSION)
        if not rows:
            return None
        return from_iso(rows[0].get("started_at"))

    def set(self, user: User | None, *, started_at: datetime | None = None) -> None:
        if user is None:
            self._store.set(CURRENT_SESSION, [])
            return
        self._store.set(
            CURRENT_SESSION,
            [
                {
                    "user_id": user.id,
                    "username": user.username,
                    "started_at": to_iso(started_at or utc_now()),
                }
            ],
        )
