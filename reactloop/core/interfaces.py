"""Core interfaces (protocols) for reactloop.

This module defines the Protocol interfaces that collaborators of the ReAct
loop must implement. Using Protocols enables structural subtyping, so test
doubles and third-party adapters need not inherit from anything.
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol

from reactloop.core.types import Message, StreamEvent


class RawLogCallback(Protocol):
    """Protocol for raw API logging callbacks.

    Implementations receive raw API requests, responses, and streaming chunks
    for debugging purposes.
    """

    def on_request(self, endpoint: str, payload: dict[str, Any]) -> None:
        """Called before making an HTTP request."""
        ...

    def on_response(self, status: int, body: dict[str, Any]) -> None:
        """Called after receiving a non-streaming response."""
        ...

    def on_chunk(self, chunk: dict[str, Any]) -> None:
        """Called for each parsed SSE chunk during streaming."""
        ...


class ChatModel(Protocol):
    """Protocol for async chat models (the loop's Model collaborator).

    Implementations must provide both streaming and non-streaming completion
    methods and must raise ``ProviderError`` on failure.

    Example:
        class EchoModel:
            async def complete(self, messages, tools=None) -> Message:
                return Message.text("echo", Role.ASSISTANT, messages[-1].get_text_content())

            async def stream(self, messages, tools=None):
                yield StreamComplete(message=await self.complete(messages, tools))
    """

    async def complete(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
    ) -> Message:
        """Perform a non-streaming completion.

        Args:
            messages: The conversation history as a list of Messages.
            tools: Optional list of tool definitions in OpenAI function format.

        Returns:
            The assistant's response, potentially including ToolUseBlocks.

        Raises:
            ProviderError: If the API request fails.
        """
        ...

    def stream(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a response with content and tool call detection.

        Yields:
            ContentDelta / ReasoningDelta chunks, ToolCallStarted notifications
            and exactly one final StreamComplete carrying the full Message.

        Raises:
            ProviderError: If the API request fails.
        """
        ...
