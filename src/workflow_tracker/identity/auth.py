# src/workflow_tracker/identity/auth.py

"""
Authentication and session gate.

Every service call starts with `AuthService.require_active(session)`, which
re-reads the user from storage and refuses to continue while the mandatory
first-login password change is pending. Only `change_password` and `logout`
run without that check.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..core.locks import LockRegistry
from ..core.models import User, utc_now
from ..core.ports import USERS, KeyValueStore
from ..errors import (
    AuthenticationRequiredError,
    CredentialError,
    PasswordChangeRequiredError,
    ValidationError,
)
from .passwords import hash_password, verify_password
from .session import Session, SessionStore
from .users import find_user, find_user_by_username

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(
        self,
        store: KeyValueStore,
        session_store: SessionStore,
        locks: LockRegistry,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._sessions = session_store
        self._locks = locks
        self._clock = clock

    def login(self, username: str, password: str) -> Session:
        user = find_user_by_username(self._store, (username or "").strip())
        if user is None or not verify_password(password or "", user.password_hash):
            logger.info("Login failed username=%s", username)
            raise CredentialError("Invalid username or password.")

        session = Session(user=user, started_at=self._clock())
        self._sessions.set(user, started_at=session.started_at)
        logger.info("Login ok user=%s first_login=%s", user.id, user.first_login)
        return session

    def logout(self) -> None:
        self._sessions.set(None)
        logger.info("Logged out.")

    def resume(self) -> Session | None:
        """Restore the persisted session, if its user still exists."""
        user = self._sessions.get()
        if user is None:
            return None
        return Session(user=user, started_at=self._sessions.started_at() or self._clock())

    def current_user(self, session: Session | None) -> User:
        """Resolve the session user without the first-login gate."""
        if session is None:
            raise AuthenticationRequiredError("Not signed in.")
        user = find_user(self._store, session.user_id)
        if user is None:
            raise AuthenticationRequiredError("The signed-in user no longer exists.")
        return user

    def require_active(self, session: Session | None) -> User:
        user = self.current_user(session)
        if user.first_login:
            raise PasswordChangeRequiredError("You must change your password before continuing.")
        return user

    def change_password(self, session: Session | None, old_password: str, new_password: str) -> Session:
        if session is None:
            raise AuthenticationRequiredError("Not signed in.")
        user = self.current_user(session)
        if not new_password:
            raise ValidationError("New password is required.")

        with self._locks.hold(USERS):
            records = self._store.get(USERS)
            idx = next((i for i, r in enumerate(records) if str(r.get("id")) == user.id), None)
            if idx is None:
                raise AuthenticationRequiredError("The signed-in user no longer exists.")

            stored = User.from_record(records[idx])
            if not verify_password(old_password or "", stored.password_hash):
                logger.info("Password change rejected user=%s (old password mismatch)", user.id)
                raise CredentialError("Incorrect old password.")

            rec = dict(records[idx])
            rec["password_hash"] = hash_password(new_password)
            rec["first_login"] = False
            records[idx] = rec
            self._store.set(USERS, records)

        updated = User.from_record(rec)
        self._sessions.set(updated, started_at=session.started_at)
        logger.info("Password changed user=%s", user.id)
        return Session(user=updated, started_at=session.started_at)
