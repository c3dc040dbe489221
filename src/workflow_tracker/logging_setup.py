# src/workflow_tracker/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Console thresholds by logger-name prefix; first match wins.
_CONSOLE_THRESHOLDS: tuple[tuple[str, int], ...] = (
    ("workflow_tracker.storage.", logging.WARNING),
    ("workflow_tracker.", logging.NOTSET),
    ("py.warnings", logging.ERROR),
)

QUIET_LIBRARIES = ("httpx", "httpcore", "openai")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable while commands are typed:
    application logs pass, store chatter only from WARNING,
    everything else (libraries, py.warnings) only from ERROR.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, threshold in _CONSOLE_THRESHOLDS:
            if record.name.startswith(prefix):
                return record.levelno >= threshold
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/workflow",
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install a filtered stderr handler and a full log file under `log_dir`.

    Replaces any handlers already on the root logger; returns the log file path.
    """
    log_file = Path(log_dir) / "workflow.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.addFilter(_ConsoleNoiseFilter())

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(file_level)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    for handler in (console, file_handler):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.captureWarnings(True)
    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_file
