"""Structured logging setup built on structlog.

The terminal belongs to curses while the UI runs, so log records go to a
file (or stderr when explicitly requested) instead of stdout.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import structlog

DEFAULT_LOG_FILE = "nolp.log"


def setup_logging(
    level: str = "WARNING",
    json_output: bool = False,
    log_file: str | None = DEFAULT_LOG_FILE,
) -> None:
    """Configure stdlib logging and structlog processors.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ...).
        json_output: Render records as JSON lines instead of key=value text.
        log_file: Destination file path, ``"-"`` for stderr, or None to
            disable output entirely.
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    if log_file is None:
        handler: logging.Handler = logging.NullHandler()
    elif log_file == "-":
        handler = logging.StreamHandler(sys.stderr)
    else:
        handler = logging.FileHandler(Path(log_file), encoding="utf-8")

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to *name*."""
    return structlog.get_logger(name)
