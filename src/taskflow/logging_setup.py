# src/taskflow/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

APP_LOGGER_PREFIX = "taskflow."

# Own loggers that run in the background and would interleave with REPL output.
QUIET_APP_LOGGERS: dict[str, int] = {
    "taskflow.tasks.task_scheduler": logging.WARNING,
    "taskflow.tasks.overdue_policy": logging.WARNING,
}


class ConsoleFilter(logging.Filter):
    """Console sees taskflow logs; background modules and everything else only when serious."""

    def __init__(self, quiet: dict[str, int] | None = None, *, foreign_level: int = logging.ERROR) -> None:
        super().__init__()
        self._quiet = QUIET_APP_LOGGERS if quiet is None else quiet
        self._foreign_level = foreign_level

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith(APP_LOGGER_PREFIX):
            # Includes captured warnings.warn() ("py.warnings").
            return record.levelno >= self._foreign_level
        for prefix, level in self._quiet.items():
            if name.startswith(prefix):
                return record.levelno >= level
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskflow",
    app_name: str = "taskflow",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console on stderr (short format, filtered) plus a full DEBUG log in
    <log_dir>/<app_name>.log. Safe to call again: previous root handlers are replaced.

    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{app_name or 'taskflow'}.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    console.addFilter(ConsoleFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(threadName)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
