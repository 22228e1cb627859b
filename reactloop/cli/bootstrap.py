"""Logging setup for the reactloop CLI."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "reactloop"


def configure_logging(
    log_dir: Path | None = None,
    verbose: bool = False,
    console: Console | None = None,
) -> Path | None:
    """Configure the reactloop namespace logger.

    Console output goes through rich (WARNING, or DEBUG when ``verbose``).
    When ``log_dir`` is given, INFO and above are also written to
    ``{log_dir}/reactloop.log`` with rotation (max 5MB per file, 3 backups).

    Args:
        log_dir: Directory for the log file. Created if it doesn't exist.
        verbose: Show debug output on the console.
        console: Console to log to (default: a stderr console).

    Returns:
        Path to the log file, or None when file logging is off.
    """
    console_level = logging.DEBUG if verbose else logging.WARNING
    file_level = logging.DEBUG if verbose else logging.INFO

    root = logging.getLogger(LOGGER_NAME)
    # Remove any existing handlers to avoid duplicates on reconfigure
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=verbose,
    )
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(console_handler)

    log_file: Path | None = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "reactloop.log"
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root.addHandler(file_handler)

    root.setLevel(min(console_level, file_level) if log_file else console_level)
    # Don't propagate to root logger
    root.propagate = False
    return log_file
