"""Typed exception hierarchy for reactloop."""

from __future__ import annotations

import re


class ReactLoopError(Exception):
    """Base class for all reactloop errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(ReactLoopError):
    """Raised for configuration issues (missing file, invalid JSON, validation failure)."""


class LoadError(ReactLoopError):
    """Base class for loading errors (config files, session state)."""


class ProviderError(ReactLoopError):
    """Raised for LLM provider issues (API errors, network issues, auth failure)."""


class AgentBusyError(ReactLoopError):
    """Raised when call() is invoked on an agent that is already running a call."""

    def __init__(self, agent_name: str) -> None:
        self.agent_name = agent_name
        super().__init__(
            f"Agent '{agent_name}' is already processing a call; "
            "concurrent calls on one agent are not allowed"
        )


class ResumeError(ReactLoopError):
    """Raised when a resume message does not match the pending tool calls."""


class HookError(ReactLoopError):
    """Raised when a hook fails, times out, or returns an invalid event."""

    def __init__(self, hook_name: str, reason: str) -> None:
        self.hook_name = hook_name
        self.reason = reason
        super().__init__(f"Hook '{hook_name}' failed: {reason}")


class ToolSchemaError(ReactLoopError):
    """Raised when a tool is registered with a malformed schema or name."""


class ToolExecutionError(ReactLoopError):
    """Raised when tool execution fails after all configured attempts."""

    def __init__(self, tool_name: str, reason: str) -> None:
        self.tool_name = tool_name
        self.reason = reason
        super().__init__(f"Tool '{tool_name}' execution failed: {reason}")


# === Error Sanitization for Agent-Facing Messages ===

_PATH_PATTERN = re.compile(r'(/[^\s:]+)+')
_HOME_PATTERN = re.compile(r'/home/[^/\s]+')
_WINDOWS_USER_PATTERN = re.compile(r'[A-Za-z]:[/\\]Users[/\\][^\\/]+', re.IGNORECASE)


def sanitize_error_for_agent(error: str | None, tool_name: str = "") -> str | None:
    """Reduce sensitive details in errors shown to the model.

    Keeps errors informative but removes full filesystem paths and home
    directory usernames.

    Args:
        error: The original error message
        tool_name: Optional tool name for context

    Returns:
        Sanitized error message, or None if input was None
    """
    if not error:
        return error

    error_lower = error.lower()

    if "permission denied" in error_lower:
        return f"Permission denied for {tool_name or 'this operation'}"

    if "timed out" in error_lower or "timeout" in error_lower:
        return f"{tool_name or 'Operation'} timed out"

    result = _WINDOWS_USER_PATTERN.sub('C:\\\\Users\\\\[user]', error)
    result = _HOME_PATTERN.sub('/home/[user]', result)
    result = _PATH_PATTERN.sub('[path]', result)
    return result
