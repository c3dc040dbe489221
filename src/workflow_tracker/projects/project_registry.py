# src/workflow_tracker/projects/project_registry.py

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from ..core.locks import LockRegistry
from ..core.models import Project, utc_now
from ..core.policy import require_admin
from ..core.ports import PROJECTS, KeyValueStore
from ..errors import NotFoundError
from ..identity.auth import AuthService
from ..identity.session import Session

logger = logging.getLogger(__name__)


def load_projects(store: KeyValueStore) -> list[Project]:
    return [Project.from_record(r) for r in store.get(PROJECTS)]


class ProjectRegistry:
    """
    Optional named groups of tasks.

    Projects are immutable once created; there is no rename or delete.
    """

    def __init__(
        self,
        store: KeyValueStore,
        auth: AuthService,
        locks: LockRegistry,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._auth = auth
        self._locks = locks
        self._clock = clock

    def build(self, name: str, description: str | None = None) -> Project:
        """Make a new, not yet stored, project record."""
        desc = (description or "").strip() or None
        return Project(id=uuid.uuid4().hex, name=(name or "").strip(), description=desc, created_at=self._clock())

    def create_project(self, session: Session, name: str, description: str | None = None) -> Project:
        actor = self._auth.require_active(session)
        require_admin(actor, "create projects")

        project = self.build(name, description)
        self.insert(project)
        logger.info("Project created id=%s name=%r by=%s", project.id, project.name, actor.id)
        return project

    def list_projects(self, session: Session) -> list[Project]:
        self._auth.require_active(session)
        return load_projects(self._store)

    def get_project(self, session: Session, project_id: str) -> Project:
        self._auth.require_active(session)
        project = self.find(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found.")
        return project

    # ---- used by TaskRegistry ----

    def find(self, project_id: str) -> Project | None:
        for project in load_projects(self._store):
            if project.id == project_id:
                return project
        return None

    def insert(self, project: Project) -> None:
        with self._locks.hold(PROJECTS):
            records = self._store.get(PROJECTS)
            records.append(project.to_record())
            self._store.set(PROJECTS, records)

    def discard(self, project_id: str) -> None:
        """Roll back an `insert` whose follow-up task write failed."""
        with self._locks.hold(PROJECTS):
            records = self._store.get(PROJECTS)
            self._store.set(PROJECTS, [r for r in records if str(r.get("id")) != project_id])
        logger.warning("Project %s rolled back", project_id)
