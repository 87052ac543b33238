# src/taskflow/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the reminder scheduler in a background thread (optional),
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import contextlib
import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..tasks.task_scheduler import SchedulerBackgroundRunner, start_scheduler_in_background

logger = logging.getLogger(__name__)


def _shutdown(state, runner: SchedulerBackgroundRunner | None) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    if runner is not None:
        runner.stop()
        runner.join(timeout=10.0)

    try:
        store = getattr(state, "store", None)
        if store is not None and hasattr(store, "close"):
            store.close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    app_name = getattr(settings, "app_name", "taskflow")
    log_dir = getattr(settings, "data_dir", ".local/taskflow")
    log_file = setup_logging(log_dir=log_dir, app_name=app_name, console_level=console_level)

    logger.info("Starting %s (log file: %s)...", app_name, log_file)

    state = create_initial_state(settings=settings)

    runner: SchedulerBackgroundRunner | None = None
    if settings.scheduler_enabled:
        runner = start_scheduler_in_background(state.scheduler)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        if settings.console_enabled:
            # Ctrl+C stays a KeyboardInterrupt here so input() can be interrupted.
            run_console_loop(state)
            stop_main.set()
        else:
            # Some platforms do not support SIGTERM.
            with contextlib.suppress(ValueError, OSError, AttributeError):
                signal.signal(signal.SIGINT, _handle_signal)
                signal.signal(signal.SIGTERM, _handle_signal)
            logger.info("Console disabled. Running reminders only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        _shutdown(state, runner)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
