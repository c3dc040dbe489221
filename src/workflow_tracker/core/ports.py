# src/workflow_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the services.

Services depend on Protocols instead of concrete implementations.
This keeps storage/AI/mail providers swappable and makes testing easier.
"""

from typing import Any, Protocol

Record = dict[str, Any]

# Named collections of the key-value store.
USERS = "users"
TASKS = "tasks"
PROJECTS = "projects"
REPORTS = "reports"
CURRENT_SESSION = "current-session"
EMAIL_CONFIG = "email-config"

COLLECTIONS = (USERS, TASKS, PROJECTS, REPORTS, CURRENT_SESSION, EMAIL_CONFIG)


class KeyValueStore(Protocol):
    """
    Whole-collection store.

    Every mutation rewrites the full collection; there is no partial update.
    A collection that was never written reads as an empty list.
    """

    def get(self, collection: str) -> list[Record]: ...
    def set(self, collection: str, records: list[Record]) -> None: ...
    def has(self, collection: str) -> bool: ...


class SuggestionClient(Protocol):
    """
    AI text helper.

    Implementations never raise: on any failure they return a short,
    human-readable degraded message instead.
    """

    def suggest(self, prompt: str) -> str: ...
    def summarize(self, report_texts: list[str]) -> str: ...


class Mailer(Protocol):
    """Outbound mail transport (simulated in this project)."""

    def send(self, *, to: str, subject: str, body: str) -> None: ...
