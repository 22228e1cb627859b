"""Tool-related error classes and control-flow signals for reactloop."""

from reactloop.core.errors import ReactLoopError


class ToolSuspended(Exception):  # noqa: N818 - a signal, not an error
    """Raised by a tool to suspend itself instead of returning a result.

    The agent marks the tool call pending and returns to its caller with
    ``GenerateReason.TOOL_SUSPENDED``. The caller later resumes by supplying a
    ``ToolResultBlock`` for the pending call, or re-runs it with ``call()``.

    Attributes:
        reason: Human-readable reason shown to the caller.
    """

    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        super().__init__(reason)


class ToolError(ReactLoopError):
    """Base class for tool registry errors."""


class ToolNotFoundError(ToolError):
    """Raised when a tool is not found in the toolkit."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool not found: {tool_name}")
