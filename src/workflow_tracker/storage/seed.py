# src/workflow_tracker/storage/seed.py

"""
First-run seeding.

Each collection is seeded only if it has never been written, so a restart
never overwrites live data. Every seeded account starts with the first-login
flag set and must rotate its password before doing anything else.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from ..core.models import Priority, Project, Task, TaskStatus, User, UserRole, utc_now
from ..core.ports import PROJECTS, REPORTS, TASKS, USERS, KeyValueStore
from ..identity.passwords import hash_password

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS = (
    # id, username, password, name, email, role
    ("u1", "admin", "admin123", "Administrator", "admin@company.com", UserRole.ADMIN),
    ("u2", "staff1", "password123", "Nguyen Van A", "a.nguyen@company.com", UserRole.STAFF),
    ("u3", "staff2", "password123", "Tran Thi B", "b.tran@company.com", UserRole.STAFF),
    ("u4", "staff3", "password123", "Le Van C", "c.le@company.com", UserRole.STAFF),
)


def default_users() -> list[User]:
    return [
        User(
            id=uid,
            username=username,
            password_hash=hash_password(password),
            name=name,
            email=email,
            role=role,
            first_login=True,
        )
        for uid, username, password, name, email, role in DEFAULT_ACCOUNTS
    ]


def demo_projects(now: datetime) -> list[Project]:
    return [
        Project(id="p1", name="Q3 Marketing Campaign",
                description="All tasks related to the summer rollout.", created_at=now),
        Project(id="p2", name="Website Redesign",
                description="Overhaul of the corporate website.", created_at=now),
    ]


def demo_tasks(now: datetime) -> list[Task]:
    day = timedelta(days=1)
    return [
        Task(
            id="t1",
            project_id="p1",
            title="Design Social Media Assets",
            description="Create visuals for Facebook and Instagram.",
            start_date=now - 5 * day,
            deadline=now - day,  # overdue
            assigned_to_id="u2",
            collaborator_ids=["u3"],
            status=TaskStatus.IN_PROGRESS,
            priority=Priority.HIGH,
            progress=50,
            created_at=now,
        ),
        Task(
            id="t2",
            project_id="p2",
            title="Setup Staging Server",
            description="Prepare environment for new website deployment.",
            start_date=now,
            deadline=now + 3 * day,
            assigned_to_id="u3",
            priority=Priority.URGENT,
            created_at=now,
        ),
        Task(
            id="t3",
            title="Fix Office Printer",
            description="Contact vendor to repair 2nd floor printer.",
            start_date=now,
            deadline=now + day,
            assigned_to_id="u2",
            priority=Priority.LOW,
            created_at=now,
        ),
    ]


def init_storage(store: KeyValueStore, *, demo_data: bool = True, now: datetime | None = None) -> list[str]:
    """Seed missing collections; returns the names that were written."""
    now = now or utc_now()
    written: list[str] = []

    if not store.has(USERS):
        store.set(USERS, [u.to_record() for u in default_users()])
        written.append(USERS)

    if not store.has(PROJECTS):
        projects = demo_projects(now) if demo_data else []
        store.set(PROJECTS, [p.to_record() for p in projects])
        written.append(PROJECTS)

    if not store.has(TASKS):
        tasks = demo_tasks(now) if demo_data else []
        store.set(TASKS, [t.to_record() for t in tasks])
        written.append(TASKS)

    if not store.has(REPORTS):
        store.set(REPORTS, [])
        written.append(REPORTS)

    if written:
        logger.info("Seeded collections: %s (demo_data=%s)", ", ".join(written), demo_data)
    return written
