# src/workflow_tracker/core/locks.py

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager

# Acquisition order. Callers that need several locks must take them in this
# order; `LockRegistry.hold` sorts for them.
_ORDER = {"task": 0, "reports": 1, "users": 2, "projects": 3, "tasks": 4}


def task_key(task_id: str) -> str:
    return f"task:{task_id}"


def _rank(key: str) -> tuple[int, str]:
    prefix = key.split(":", 1)[0]
    return (_ORDER.get(prefix, len(_ORDER)), key)


class LockRegistry:
    """
    Named re-entrant locks shared by the services of one AppState.

    Keys are either a collection name ("tasks", "reports", ...) guarding a
    read-modify-write of that collection, or "task:<id>" serializing
    status/progress mutations of a single task.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def lock(self, key: str) -> threading.RLock:
        with self._guard:
            lk = self._locks.get(key)
            if lk is None:
                lk = threading.RLock()
                self._locks[key] = lk
            return lk

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        with ExitStack() as stack:
            for key in sorted(set(keys), key=_rank):
                stack.enter_context(self.lock(key))
            yield
