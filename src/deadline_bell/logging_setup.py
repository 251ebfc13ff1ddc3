# src/deadline_bell/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "deadline_bell.log"

# Background threads that would otherwise interleave with the console prompt.
_QUIET_ON_CONSOLE = (
    "deadline_bell.worker.",
    "deadline_bell.alarms.sound",
    "deadline_bell.alarms.notifier",
)


class _ConsoleFilter(logging.Filter):
    """
    Keep the console readable while the REPL is waiting for input:
    - deadline_bell logs pass, except the helper/sound/notifier threads (WARNING+)
    - captured Python warnings and third-party libraries only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("deadline_bell."):
            if name.startswith(_QUIET_ON_CONSOLE):
                return record.levelno >= logging.WARNING
            return True

        return record.levelno >= logging.ERROR


def level_from_name(name: str, default: int = logging.INFO) -> int:
    level = logging.getLevelName(str(name).strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(
    *,
    log_dir: str | Path = ".local/deadline_bell",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Configure the root logger once, before anything logs.

    Console: filtered, at console_level. File: everything at file_level,
    rotated because the alarm daemon is meant to stay up for days.
    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(threadName)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleFilter())
    root.addHandler(console)

    file_handler = RotatingFileHandler(
        str(log_file), maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    # warnings.warn(...) -> 'py.warnings' logger
    logging.captureWarnings(True)
    return log_file
