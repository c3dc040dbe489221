# src/workflow_tracker/identity/users.py

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from ..core.locks import LockRegistry
from ..core.models import User, UserRole
from ..core.policy import require_admin
from ..core.ports import USERS, KeyValueStore
from ..errors import NotFoundError, ValidationError
from .passwords import hash_password

if TYPE_CHECKING:
    from .auth import AuthService
    from .session import Session

logger = logging.getLogger(__name__)


def load_users(store: KeyValueStore) -> list[User]:
    return [User.from_record(r) for r in store.get(USERS)]


def find_user(store: KeyValueStore, user_id: str) -> User | None:
    for user in load_users(store):
        if user.id == user_id:
            return user
    return None


def find_user_by_username(store: KeyValueStore, username: str) -> User | None:
    for user in load_users(store):
        if user.username == username:
            return user
    return None


class UserDirectory:
    """
    Admin-facing user management.

    Deleting a user does not touch tasks or reports: ids left in
    `assigned_to_id`, `collaborator_ids` and `Report.user_id` simply dangle.
    """

    def __init__(self, store: KeyValueStore, auth: AuthService, locks: LockRegistry) -> None:
        self._store = store
        self._auth = auth
        self._locks = locks

    def list_users(self, session: Session, *, role: UserRole | None = None) -> list[User]:
        self._auth.require_active(session)
        users = load_users(self._store)
        if role is not None:
            users = [u for u in users if u.role == role]
        return users

    def get_user(self, session: Session, user_id: str) -> User:
        self._auth.require_active(session)
        user = find_user(self._store, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found.")
        return user

    def create_user(
        self,
        session: Session,
        *,
        username: str,
        password: str,
        name: str,
        email: str,
        role: UserRole = UserRole.STAFF,
    ) -> User:
        actor = self._auth.require_active(session)
        require_admin(actor, "create users")

        username = (username or "").strip()
        if not username:
            raise ValidationError("username is required")
        if not password:
            raise ValidationError("password is required")
        if not (name or "").strip():
            raise ValidationError("name is required")

        with self._locks.hold(USERS):
            records = self._store.get(USERS)
            if any(r.get("username") == username for r in records):
                raise ValidationError(f"Username already exists: {username}")

            user = User(
                id=uuid.uuid4().hex,
                username=username,
                password_hash=hash_password(password),
                name=name.strip(),
                email=(email or "").strip(),
                role=UserRole(role),
                first_login=True,
            )
            records.append(user.to_record())
            self._store.set(USERS, records)

        logger.info("User created id=%s username=%s role=%s by=%s", user.id, username, user.role, actor.id)
        return user

    def delete_user(self, session: Session, user_id: str) -> None:
        actor = self._auth.require_active(session)
        require_admin(actor, "delete users")
        if user_id == actor.id:
            raise ValidationError("You cannot delete your own account.")

        with self._locks.hold(USERS):
            records = self._store.get(USERS)
            kept = [r for r in records if str(r.get("id")) != user_id]
            if len(kept) == len(records):
                raise NotFoundError(f"User {user_id} not found.")
            self._store.set(USERS, kept)

        logger.info("User deleted id=%s by=%s", user_id, actor.id)
