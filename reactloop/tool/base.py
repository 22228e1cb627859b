"""Base tool interface for reactloop.

This module defines the Tool protocol that all tools must implement and the
concrete tool flavours the toolkit registers:

- BaseTool: Generic base with name/description/parameters storage
- FunctionTool: Wraps a plain sync, async or async-generator function
- SchemaOnlyTool: Advertises a schema but has no implementation; invoking it
  always suspends so the caller can supply the result

Tools return their output in any of these shapes; the toolkit normalizes them
into a ``ToolResultBlock``:

- ``str`` becomes a single TextBlock
- a content block (text, image, ...) is used as-is
- a list/tuple of strings and content blocks keeps its order
- a ``ToolResultBlock`` has its id and name rebound to the call
- ``dict`` values are JSON-encoded, anything else is ``str()``-ed
- ``None`` yields an empty output
"""

from __future__ import annotations

import asyncio
import inspect
import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from typing import Any, Protocol, runtime_checkable

from reactloop.core.types import (
    AudioBlock,
    ContentBlock,
    ImageBlock,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    VideoBlock,
)
from reactloop.tool.errors import ToolSuspended
from reactloop.tool.schema import function_to_schema

_OUTPUT_BLOCK_TYPES = (TextBlock, ThinkingBlock, ImageBlock, AudioBlock, VideoBlock)


@runtime_checkable
class Tool(Protocol):
    """Protocol for all tools.

    The protocol defines four required members:
    - name: Unique identifier used in tool calls
    - description: Human-readable text shown to the model
    - parameters: JSON Schema defining the expected arguments
    - execute: Async method that performs the tool's action

    Streaming tools additionally set ``streaming = True`` and implement
    ``stream(**kwargs)`` as an async iterator. Each yielded chunk is the
    cumulative output so far; the last chunk is the final result.

    A tool that cannot complete now raises ``ToolSuspended(reason)``.
    """

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def parameters(self) -> dict[str, Any]: ...

    async def execute(self, **kwargs: Any) -> Any: ...


class BaseTool(ABC):
    """Convenience base class for implementing tools.

    Stores name, description, and parameters as instance attributes set in
    __init__. Subclasses only need to implement the execute() method.

    Example:
        >>> class EchoTool(BaseTool):
        ...     def __init__(self):
        ...         super().__init__(
        ...             name="echo",
        ...             description="Echo back the input text",
        ...             parameters={
        ...                 "type": "object",
        ...                 "properties": {"text": {"type": "string"}},
        ...                 "required": ["text"],
        ...             },
        ...         )
        ...
        ...     async def execute(self, **kwargs: Any) -> Any:
        ...         return kwargs["text"]
    """

    streaming: bool = False

    def __init__(
        self,
        name: str,
        description: str,
        parameters: dict[str, Any] | None = None,
    ) -> None:
        self._name = name
        self._description = description
        self._parameters = parameters or {"type": "object", "properties": {}}

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict[str, Any]:
        return self._parameters

    @abstractmethod
    async def execute(self, **kwargs: Any) -> Any:
        """Execute the tool with validated arguments."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"


class FunctionTool(BaseTool):
    """Tool backed by a Python callable.

    Sync functions run in a worker thread so they never block the event loop.
    Async generator functions become streaming tools.

    When ``description`` or ``parameters`` are omitted they are derived from
    the function's docstring and signature.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
        parameters: dict[str, Any] | None = None,
    ) -> None:
        derived_description, derived_parameters = function_to_schema(func)
        super().__init__(
            name=name or func.__name__,
            description=description or derived_description,
            parameters=parameters if parameters is not None else derived_parameters,
        )
        self._func = func
        self.streaming = inspect.isasyncgenfunction(func)
        self._is_async = inspect.iscoroutinefunction(func)

    @property
    def func(self) -> Callable[..., Any]:
        return self._func

    async def execute(self, **kwargs: Any) -> Any:
        if self.streaming:
            final: Any = None
            async for chunk in self.stream(**kwargs):
                final = chunk
            return final
        if self._is_async:
            return await self._func(**kwargs)
        return await asyncio.to_thread(self._func, **kwargs)

    async def stream(self, **kwargs: Any) -> AsyncIterator[Any]:
        """Yield cumulative output chunks from an async generator function."""
        if not self.streaming:
            yield await self.execute(**kwargs)
            return
        async for chunk in self._func(**kwargs):
            yield chunk


class SchemaOnlyTool(BaseTool):
    """A tool known only by its schema.

    Used for tools executed outside the agent (by the caller, a human, or a
    remote system). Invoking it always suspends; the caller resumes the agent
    with a ``ToolResultBlock`` carrying the externally produced output.
    """

    async def execute(self, **kwargs: Any) -> Any:
        raise ToolSuspended(
            f"Tool '{self.name}' is executed externally; awaiting its result"
        )


def to_output_blocks(output: Any) -> tuple[ContentBlock, ...]:
    """Normalize a tool's return value into a tuple of content blocks."""
    if output is None:
        return ()
    if isinstance(output, str):
        return (TextBlock(output),)
    if isinstance(output, ToolResultBlock):
        return output.output
    if isinstance(output, _OUTPUT_BLOCK_TYPES):
        return (output,)
    if isinstance(output, (list, tuple)):
        blocks: list[ContentBlock] = []
        for item in output:
            if isinstance(item, str):
                blocks.append(TextBlock(item))
            elif isinstance(item, _OUTPUT_BLOCK_TYPES):
                blocks.append(item)
            else:
                blocks.append(TextBlock(_stringify(item)))
        return tuple(blocks)
    return (TextBlock(_stringify(output)),)


def _stringify(value: Any) -> str:
    if isinstance(value, (dict, list)):
        try:
            return json.dumps(value, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def make_result(
    tool_use: ToolUseBlock,
    output: Any,
    is_error: bool = False,
) -> ToolResultBlock:
    """Build the ToolResultBlock answering ``tool_use`` from raw tool output."""
    if isinstance(output, ToolResultBlock):
        is_error = is_error or output.is_error
    return ToolResultBlock(
        id=tool_use.id,
        name=tool_use.name,
        output=to_output_blocks(output),
        is_error=is_error,
    )


def error_result(tool_use: ToolUseBlock, message: str) -> ToolResultBlock:
    """Build an error ToolResultBlock with a single text message."""
    return ToolResultBlock(
        id=tool_use.id,
        name=tool_use.name,
        output=(TextBlock(f"Error: {message}"),),
        is_error=True,
    )
