"""Canonical tool identifier handling.

Tool names end up in model-facing tool definitions, so they must satisfy the
function-name rules OpenAI-compatible APIs enforce. All registration paths go
through ``validate_tool_name``.

Usage:
    from reactloop.core.identifiers import validate_tool_name

    validate_tool_name("my_tool")          # OK
    validate_tool_name("123_start")        # Raises ToolNameError
"""

from __future__ import annotations

import re

MAX_TOOL_NAME_LENGTH: int = 64

# Must start with a letter or underscore, then alphanumeric/underscore/hyphen
VALID_TOOL_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_-]{0,63}$")

RESERVED_TOOL_NAMES: frozenset[str] = frozenset({
    "true",
    "false",
    "null",
    "none",
})


class ToolNameError(ValueError):
    """Raised when a tool name is invalid."""

    pass


def validate_tool_name(name: str, *, allow_reserved: bool = False) -> None:
    """Validate that a tool name conforms to the canonical format.

    Args:
        name: The tool name to validate.
        allow_reserved: If True, allow reserved names. Default False.

    Raises:
        ToolNameError: If the name is invalid, with a descriptive message.

    Examples:
        >>> validate_tool_name("read_file")  # OK
        >>> validate_tool_name("")  # Raises ToolNameError
        >>> validate_tool_name("a" * 100)  # Raises ToolNameError (too long)
    """
    if not isinstance(name, str):
        raise ToolNameError(f"Tool name must be a string, got {type(name).__name__}")

    if not name:
        raise ToolNameError("Tool name cannot be empty")

    if len(name) > MAX_TOOL_NAME_LENGTH:
        raise ToolNameError(
            f"Tool name '{name[:20]}...' exceeds maximum length of "
            f"{MAX_TOOL_NAME_LENGTH} characters"
        )

    if not VALID_TOOL_NAME_PATTERN.match(name):
        if name[0].isdigit():
            raise ToolNameError(f"Tool name '{name}' cannot start with a digit")
        raise ToolNameError(
            f"Tool name '{name}' contains invalid characters. "
            "Must be 1-64 chars, start with letter/underscore, "
            "contain only alphanumeric/underscore/hyphen"
        )

    if not allow_reserved and name.lower() in RESERVED_TOOL_NAMES:
        raise ToolNameError(f"Tool name '{name}' is reserved and cannot be used")

