"""Tool system: tool protocol, toolkit and suspension signal."""

from reactloop.tool.base import (
    BaseTool,
    FunctionTool,
    SchemaOnlyTool,
    Tool,
    error_result,
    make_result,
    to_output_blocks,
)
from reactloop.tool.errors import ToolError, ToolNotFoundError, ToolSuspended
from reactloop.tool.schema import function_to_schema
from reactloop.tool.toolkit import ToolEntry, Toolkit

__all__ = [
    "BaseTool",
    "FunctionTool",
    "SchemaOnlyTool",
    "Tool",
    "ToolEntry",
    "ToolError",
    "ToolNotFoundError",
    "ToolSuspended",
    "Toolkit",
    "error_result",
    "function_to_schema",
    "make_result",
    "to_output_blocks",
]
