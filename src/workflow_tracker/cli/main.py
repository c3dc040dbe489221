# src/workflow_tracker/cli/main.py

"""Console entrypoint: logging, AppState, then the REPL until /exit or EOF."""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _console_level(settings) -> int:
    level = logging.getLevelName(str(settings.log_level).upper())
    return level if isinstance(level, int) else logging.INFO


def main() -> None:
    settings = get_settings()
    log_file = setup_logging(log_dir=settings.data_dir, console_level=_console_level(settings))
    logger.info("Starting %s (log file %s)", settings.app_name, log_file)

    state = create_initial_state(settings=settings)
    try:
        run_console_loop(state)
    finally:
        close = getattr(state.store, "close", None)
        if callable(close):
            close()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
