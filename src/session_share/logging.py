"""Logging configuration for session-share.

All module loggers live under the ``session_share`` namespace and share the
handlers installed on it by setup_logging(): a log file per entry point in
~/session-share/logs/ and, optionally, a stderr handler for warnings. Nothing
is ever logged to stdout, which carries the converted conversation.
"""

import logging
import sys
from pathlib import Path

ROOT_LOGGER = "session_share"
DEFAULT_LOG_DIR = Path.home() / "session-share" / "logs"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    name: str,
    log_dir: Path | None = None,
    level: int = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Install file and console handlers for an entry point.

    Args:
        name: Entry point name; logs go to ``<log_dir>/<name>.log``
        log_dir: Directory for log files (defaults to ~/session-share/logs/)
        level: Threshold for the package logger and the log file
        console: Also report warnings and errors on stderr

    Returns:
        The entry point's logger
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)

    # Handlers are installed once per process
    if not root.handlers:
        log_dir = log_dir or DEFAULT_LOG_DIR
        log_dir.mkdir(parents=True, exist_ok=True)
        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

        file_handler = logging.FileHandler(log_dir / f"{name}.log", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

        if console:
            stderr_handler = logging.StreamHandler(sys.stderr)
            stderr_handler.setLevel(max(level, logging.WARNING))
            stderr_handler.setFormatter(formatter)
            root.addHandler(stderr_handler)

    return get_logger(name)


def get_logger(name: str) -> logging.Logger:
    """Return the ``session_share.<name>`` logger.

    Safe to call at import time; records are only written once
    setup_logging() has installed handlers.
    """
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def resolve_level(level: str | int) -> int:
    """Convert a level name such as "debug" to its numeric value (INFO if unknown)."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO
