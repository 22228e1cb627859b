"""Core constants and paths for reactloop.

Single source of truth for global paths. All modules should import from here
instead of hardcoding paths like `Path.home() / ".reactloop"`.
"""

from pathlib import Path

REACTLOOP_DIR_NAME = ".reactloop"

# Text returned to the caller when a call is interrupted
INTERRUPT_REPLY = "I noticed that you have interrupted me. What can I do for you?"

# Error text recorded for tool calls abandoned by a new user turn
CANCELLED_TOOL_TEXT = "Cancelled: the user sent a new message before this tool call completed"


def get_reactloop_dir() -> Path:
    """Get ~/.reactloop (global config directory)."""
    return Path.home() / REACTLOOP_DIR_NAME


def get_sessions_dir() -> Path:
    """Get default session storage directory."""
    return get_reactloop_dir() / "sessions"


def get_log_dir() -> Path:
    """Get directory for rotating log files."""
    return get_reactloop_dir() / "logs"
