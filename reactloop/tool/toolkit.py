"""Toolkit: tool registration, schema export and invocation.

Example:
    from reactloop.tool import Toolkit

    toolkit = Toolkit()

    @toolkit.tool
    def add(a: int, b: int) -> int:
        \"\"\"Add two integers.\"\"\"
        return a + b

    toolkit.register_schema(
        "ask_human",
        "Ask the operator a question",
        {"type": "object", "properties": {"q": {"type": "string"}}, "required": ["q"]},
    )

    result = await toolkit.invoke(ToolUseBlock(id="1", name="add", input={"a": 2, "b": 2}))
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any

from reactloop.config.schema import DEFAULT_TOOL_EXECUTION, ExecutionConfig, ToolkitConfig
from reactloop.core.errors import ToolExecutionError, ToolSchemaError, sanitize_error_for_agent
from reactloop.core.identifiers import ToolNameError, validate_tool_name
from reactloop.core.types import TextBlock, ToolResultBlock, ToolUseBlock
from reactloop.core.utils import calculate_backoff, run_with_timeout
from reactloop.core.validation import (
    ValidationError,
    validate_parameters_schema,
    validate_tool_arguments,
)
from reactloop.tool.base import FunctionTool, SchemaOnlyTool, Tool, error_result, make_result
from reactloop.tool.errors import ToolNotFoundError, ToolSuspended

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[ToolResultBlock], Awaitable[None]]


@dataclass(frozen=True)
class ToolEntry:
    """A registered tool with its execution policy.

    Attributes:
        tool: The tool instance.
        execution: Timeout/retry policy, or None to use the toolkit default.
    """

    tool: Tool
    execution: ExecutionConfig | None = None


class Toolkit:
    """Registry of tools available to an agent.

    Tools are registered by instance (``register``), by function
    (``register_function`` / the ``tool`` decorator), or by schema alone
    (``register_schema``). Registration validates the tool name and its
    parameters schema and raises ``ToolSchemaError`` on malformed input.
    Re-registering a name replaces the previous tool.

    ``invoke`` never raises for model mistakes: unknown tools and invalid
    arguments come back as error results so the model can correct itself.
    It raises ``ToolSuspended`` when the tool suspends, and
    ``ToolExecutionError`` when the tool keeps failing after the configured
    attempts.
    """

    def __init__(
        self,
        config: ToolkitConfig | None = None,
        execution: ExecutionConfig | None = None,
    ) -> None:
        self._config = config or ToolkitConfig()
        self._execution = execution or DEFAULT_TOOL_EXECUTION
        self._entries: dict[str, ToolEntry] = {}

    # === Configuration ===

    @property
    def config(self) -> ToolkitConfig:
        return self._config

    @property
    def parallel(self) -> bool:
        """Whether tool calls of one reasoning step run concurrently."""
        return self._config.parallel

    @property
    def max_concurrent(self) -> int:
        return self._config.max_concurrent

    @property
    def execution(self) -> ExecutionConfig:
        """Default timeout/retry policy for tools without their own."""
        return self._execution

    # === Registration ===

    def register(self, tool: Tool, *, execution: ExecutionConfig | None = None) -> Tool:
        """Register a tool instance.

        Raises:
            ToolSchemaError: If the name or parameters schema is malformed.
        """
        try:
            validate_tool_name(tool.name)
        except ToolNameError as e:
            raise ToolSchemaError(str(e)) from e
        try:
            validate_parameters_schema(tool.parameters)
        except ValidationError as e:
            raise ToolSchemaError(f"Tool '{tool.name}': {e.message}") from e

        if tool.name in self._entries:
            logger.debug("Replacing registered tool: %s", tool.name)
        self._entries[tool.name] = ToolEntry(tool=tool, execution=execution)
        return tool

    def register_function(
        self,
        func: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
        parameters: dict[str, Any] | None = None,
        *,
        execution: ExecutionConfig | None = None,
    ) -> FunctionTool:
        """Register a sync, async or async-generator function as a tool.

        Args:
            func: The callable. Its keyword arguments receive the validated input.
            name: Tool name (default: the function name).
            description: Description for the model (default: docstring summary).
            parameters: JSON Schema for the input (default: derived from the
                signature).
            execution: Per-tool timeout/retry policy.

        Returns:
            The registered FunctionTool.
        """
        tool = FunctionTool(func, name=name, description=description, parameters=parameters)
        self.register(tool, execution=execution)
        return tool

    def tool(
        self,
        func: Callable[..., Any] | None = None,
        *,
        name: str | None = None,
        description: str | None = None,
        parameters: dict[str, Any] | None = None,
    ) -> Any:
        """Decorator form of ``register_function``. Returns the function unchanged."""

        def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
            self.register_function(f, name=name, description=description, parameters=parameters)
            return f

        if func is None:
            return decorator
        return decorator(func)

    def register_schema(
        self,
        name: str,
        description: str,
        parameters: dict[str, Any],
    ) -> SchemaOnlyTool:
        """Register a schema-only tool. Invoking it always suspends."""
        tool = SchemaOnlyTool(name=name, description=description, parameters=parameters)
        self.register(tool)
        return tool

    def unregister(self, name: str) -> None:
        """Remove a tool.

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``.
        """
        if name not in self._entries:
            raise ToolNotFoundError(name)
        del self._entries[name]

    # === Lookup ===

    def get(self, name: str) -> Tool | None:
        entry = self._entries.get(name)
        return entry.tool if entry else None

    @property
    def names(self) -> list[str]:
        return list(self._entries.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_definitions(self) -> list[dict[str, Any]]:
        """Get OpenAI-format tool definitions for all registered tools.

        Schema-only tools are included; the model cannot tell them apart.

        Returns:
            List of tool definitions with the structure:
            {
                "type": "function",
                "function": {
                    "name": "tool_name",
                    "description": "tool description",
                    "parameters": {...json schema...}
                }
            }
        """
        return [
            {
                "type": "function",
                "function": {
                    "name": entry.tool.name,
                    "description": entry.tool.description,
                    "parameters": entry.tool.parameters,
                },
            }
            for entry in self._entries.values()
        ]

    # === Invocation ===

    async def invoke(
        self,
        tool_use: ToolUseBlock,
        on_chunk: ChunkCallback | None = None,
    ) -> ToolResultBlock:
        """Execute a tool call.

        Args:
            tool_use: The model's tool-use request.
            on_chunk: Awaited with each intermediate result of a streaming tool.

        Returns:
            The tool result. Unknown tools and invalid arguments produce error
            results.

        Raises:
            ToolSuspended: If the tool suspended itself. Never retried.
            ToolExecutionError: If the tool raised (or timed out) on every
                configured attempt.
        """
        entry = self._entries.get(tool_use.name)
        if entry is None:
            logger.warning("Unknown tool requested: %s", tool_use.name)
            return error_result(tool_use, f"Unknown tool: {tool_use.name}")

        tool = entry.tool
        try:
            args = validate_tool_arguments(tool_use.input, tool.parameters, logger=logger)
        except ValidationError as e:
            return error_result(tool_use, f"Invalid arguments for {tool_use.name}: {e.message}")

        policy = entry.execution or self._execution
        last_error: BaseException | None = None

        for attempt in range(policy.max_attempts):
            streamed = [False]
            try:
                result = await run_with_timeout(
                    self._run_tool(tool, args, tool_use, on_chunk, streamed),
                    policy.timeout,
                )
                return self._sanitize(result)
            except ToolSuspended:
                raise
            except TimeoutError as e:
                last_error = e
                reason = f"timed out after {policy.timeout}s"
            except Exception as e:
                last_error = e
                reason = f"{type(e).__name__}: {e}"

            # Chunks already delivered cannot be taken back
            if streamed[0] or attempt + 1 >= policy.max_attempts:
                break
            delay = calculate_backoff(
                attempt,
                policy.initial_backoff,
                policy.backoff_multiplier,
                policy.max_backoff,
            )
            logger.warning(
                "Tool '%s' failed (%s), retrying in %.1fs (attempt %d/%d)",
                tool_use.name, reason, delay, attempt + 1, policy.max_attempts,
            )
            await asyncio.sleep(delay)

        logger.error("Tool '%s' failed: %s", tool_use.name, reason)
        raise ToolExecutionError(tool_use.name, reason) from last_error

    async def _run_tool(
        self,
        tool: Tool,
        args: dict[str, Any],
        tool_use: ToolUseBlock,
        on_chunk: ChunkCallback | None,
        streamed: list[bool],
    ) -> ToolResultBlock:
        if not getattr(tool, "streaming", False):
            return make_result(tool_use, await tool.execute(**args))

        final: ToolResultBlock | None = None
        async for chunk in tool.stream(**args):  # type: ignore[attr-defined]
            final = make_result(tool_use, chunk)
            streamed[0] = True
            if on_chunk is not None:
                await on_chunk(final)
        return final if final is not None else make_result(tool_use, None)

    @staticmethod
    def _sanitize(result: ToolResultBlock) -> ToolResultBlock:
        if not result.is_error:
            return result
        output = tuple(
            TextBlock(sanitize_error_for_agent(b.text, result.name) or "")
            if isinstance(b, TextBlock) else b
            for b in result.output
        )
        if output != result.output:
            logger.debug("Sanitized error output of tool '%s'", result.name)
        return replace(result, output=output)
