# tests/test_locks.py

from __future__ import annotations

import threading

from workflow_tracker.core.locks import LockRegistry, task_key
from workflow_tracker.core.models import TaskStatus
from workflow_tracker.core.ports import PROJECTS, REPORTS, TASKS, USERS


class _RecordingLocks(LockRegistry):
    def __init__(self) -> None:
        super().__init__()
        self.taken: list[str] = []

    def lock(self, key: str) -> threading.RLock:
        self.taken.append(key)
        return super().lock(key)


def test_hold_takes_keys_in_fixed_order() -> None:
    locks = _RecordingLocks()

    with locks.hold(TASKS, PROJECTS, task_key("t1"), USERS, REPORTS, TASKS):
        pass

    assert locks.taken == [task_key("t1"), REPORTS, USERS, PROJECTS, TASKS]


def test_hold_is_reentrant() -> None:
    locks = LockRegistry()
    with locks.hold(TASKS):
        with locks.hold(task_key("t1"), TASKS):
            assert locks.lock(TASKS) is locks.lock(TASKS)


def _run_in_threads(n: int, target) -> list[Exception]:
    barrier = threading.Barrier(n)
    errors: list[Exception] = []

    def worker(i: int) -> None:
        barrier.wait()
        try:
            target(i)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return errors


def test_concurrent_reports_on_one_task(state, staff1, make_task) -> None:
    task = make_task()
    n = 12

    errors = _run_in_threads(
        n,
        lambda i: state.reports.submit_report(staff1, task.id, content=f"step {i}", percentage=i + 1),
    )

    assert errors == []
    assert len(state.reports.list_reports(staff1, task.id)) == n
    stored = state.tasks.find(task.id)
    assert stored.version == n + 1
    assert 1 <= stored.progress <= n


def test_concurrent_status_changes_on_one_task(state, staff1, make_task) -> None:
    task = make_task()
    n = 12
    statuses = [TaskStatus.IN_PROGRESS, TaskStatus.TODO, TaskStatus.CANCELLED]

    errors = _run_in_threads(n, lambda i: state.tasks.set_status(staff1, task.id, statuses[i % 3]))

    assert errors == []
    assert state.tasks.find(task.id).version == n + 1


def test_task_lock_blocks_other_writers(state, staff1, make_task) -> None:
    task = make_task()
    done = threading.Event()

    def change() -> None:
        state.tasks.set_status(staff1, task.id, TaskStatus.IN_PROGRESS)
        done.set()

    with state.locks.hold(task_key(task.id)):
        writer = threading.Thread(target=change)
        writer.start()
        assert not done.wait(timeout=0.2)
        assert state.tasks.find(task.id).version == 1

    writer.join(timeout=10)
    assert done.is_set()
    assert state.tasks.find(task.id).version == 2
