# tests/test_logging_setup.py

from __future__ import annotations

import logging

import pytest

from workflow_tracker.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("workflow_tracker.tasks.task_registry", logging.DEBUG, True),
        ("workflow_tracker.storage.kv_store", logging.INFO, False),
        ("workflow_tracker.storage.kv_store", logging.WARNING, True),
        ("openai", logging.WARNING, False),
        ("py.warnings", logging.ERROR, True),
    ],
)
def test_console_filter(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown


def test_setup_logging_writes_file(tmp_path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        log_file = setup_logging(log_dir=tmp_path / "logs")
        logging.getLogger("workflow_tracker.test").debug("hello file")
        for handler in root.handlers:
            handler.flush()
        assert log_file.read_text(encoding="utf-8").strip().endswith("workflow_tracker.test: hello file")
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        logging.captureWarnings(False)
