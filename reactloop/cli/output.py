"""Rich-based output utilities for the reactloop CLI."""

from rich.console import Console

from reactloop.core.types import ToolResultBlock, ToolUseBlock

# Shared console instance
console = Console()


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[dim]{message}[/dim]")


def format_tool_call(tool_use: ToolUseBlock, max_length: int = 70) -> str:
    """Format a tool call as ``name(key=value, ...)``, truncated to ``max_length``."""
    params = ", ".join(f"{k}={v!r}" for k, v in tool_use.input.items())
    if len(params) > max_length:
        params = params[: max_length - 3] + "..."
    return f"{tool_use.name}({params})"


def print_tool_result(result: ToolResultBlock) -> None:
    style = "red" if result.is_error else "green"
    text = result.text.replace("\n", " ")
    if len(text) > 100:
        text = text[:97] + "..."
    console.print(f"  [{style}]●[/] [dim]{result.name}: {text}[/dim]", highlight=False)
