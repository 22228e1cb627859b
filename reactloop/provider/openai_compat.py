"""OpenAI-compatible chat model adapter.

Works with any server exposing the ``/chat/completions`` endpoint with
OpenAI message format and function calling:
- openai: api.openai.com
- ollama: Local Ollama server (http://localhost:11434/v1)
- vllm: vLLM OpenAI-compatible server
- compatible: any other compatible server
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

import httpx

from reactloop.core.errors import ProviderError
from reactloop.core.types import (
    ChatUsage,
    ContentBlock,
    ContentDelta,
    Message,
    ReasoningDelta,
    Role,
    StreamComplete,
    StreamEvent,
    TextBlock,
    ThinkingBlock,
    ToolCallStarted,
    ToolUseBlock,
)
from reactloop.provider.base import BaseProvider
from reactloop.provider.formatter import OpenAIChatFormatter

if TYPE_CHECKING:
    from reactloop.config.schema import ProviderConfig
    from reactloop.core.interfaces import RawLogCallback

logger = logging.getLogger(__name__)

ASSISTANT_NAME = "assistant"


class OpenAICompatProvider(BaseProvider):
    """Adapter for OpenAI-compatible chat completions APIs.

    Supports:
    - Message format: role/content/tool_calls/tool_call_id
    - Tool format: OpenAI function calling
    - Streaming: SSE with delta objects
    - Reasoning output: ``reasoning_content`` / ``reasoning`` fields

    Example:
        config = ProviderConfig(type="ollama", base_url="http://localhost:11434/v1",
                                auth_method="none")
        provider = OpenAICompatProvider(config, "qwen2.5:7b")

        reply = await provider.complete([Message.text("user", Role.USER, "Hello")])
    """

    def __init__(
        self,
        config: ProviderConfig,
        model_id: str,
        raw_log: RawLogCallback | None = None,
        reasoning: bool = False,
        max_tokens: int | None = None,
        formatter: OpenAIChatFormatter | None = None,
    ) -> None:
        super().__init__(config, model_id, raw_log, reasoning, max_tokens)
        self._formatter = formatter or OpenAIChatFormatter()

    def _build_endpoint(self, stream: bool = False) -> str:
        return f"{self._base_url}/chat/completions"

    def _build_request_body(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
        stream: bool,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self._model,
            "messages": self._formatter.format(messages),
            "stream": stream,
        }

        if tools:
            body["tools"] = tools

        if stream:
            body["stream_options"] = {"include_usage": True}

        if self._max_tokens:
            body["max_tokens"] = self._max_tokens

        if self._reasoning:
            body["reasoning_effort"] = "high"

        return body

    def _parse_arguments(self, raw: str) -> dict[str, Any]:
        if not raw:
            return {}
        try:
            arguments = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Failed to parse tool arguments JSON: %.100s", raw)
            return {"_raw_arguments": raw}
        if not isinstance(arguments, dict):
            return {"_raw_arguments": raw}
        return arguments

    @staticmethod
    def _parse_usage(usage: dict[str, Any] | None, elapsed: float) -> ChatUsage | None:
        if not usage:
            return None
        return ChatUsage(
            input_tokens=usage.get("prompt_tokens", 0) or 0,
            output_tokens=usage.get("completion_tokens", 0) or 0,
            time=elapsed,
        )

    def _parse_response(self, data: dict[str, Any], elapsed: float) -> Message:
        """Parse an OpenAI-format response into a Message.

        Raises:
            ProviderError: If response format is invalid.
        """
        try:
            msg = data["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Failed to parse API response: {e}") from e

        blocks: list[ContentBlock] = []
        reasoning = msg.get("reasoning_content") or msg.get("reasoning")
        if reasoning:
            blocks.append(ThinkingBlock(reasoning))

        content = msg.get("content") or ""
        if content:
            blocks.append(TextBlock(content))

        for tc in msg.get("tool_calls") or []:
            func = tc.get("function", {})
            if not tc.get("id") or not func.get("name"):
                raise ProviderError(f"Malformed tool call in API response: {tc!r:.200}")
            blocks.append(
                ToolUseBlock(
                    id=tc["id"],
                    name=func["name"],
                    input=self._parse_arguments(func.get("arguments", "")),
                )
            )

        return Message(
            name=ASSISTANT_NAME,
            role=Role.ASSISTANT,
            content=tuple(blocks),
            usage=self._parse_usage(data.get("usage"), elapsed),
        )

    async def _parse_stream(
        self, response: httpx.Response, started: float
    ) -> AsyncIterator[StreamEvent]:
        """Parse an OpenAI SSE stream into StreamEvents."""
        state = _StreamState()

        async for line in response.aiter_lines():
            line = line.strip()
            if not line or line.startswith(":") or not line.startswith("data:"):
                continue

            data = line[5:].removeprefix(" ")
            if data == "[DONE]":
                state.received_done = True
                break

            try:
                event_data = json.loads(data)
            except json.JSONDecodeError:
                logger.debug("Skipping malformed SSE data: %.100s", data)
                continue

            state.event_count += 1
            if self._raw_log:
                self._raw_log.on_chunk(event_data)

            for event in self._process_stream_event(event_data, state):
                yield event

        elapsed = _elapsed_since(started)
        if not state.content and not state.tool_calls_by_index:
            logger.warning(
                "Empty stream response: status=%d, events=%d, received_done=%s, finish_reason=%s",
                response.status_code, state.event_count, state.received_done, state.finish_reason,
            )
        else:
            logger.debug(
                "Stream complete: events=%d, content_len=%d, tools=%d, done=%s, finish=%s",
                state.event_count, len(state.content), len(state.tool_calls_by_index),
                state.received_done, state.finish_reason,
            )
        yield StreamComplete(message=self._build_stream_message(state, elapsed))

    def _process_stream_event(
        self,
        event_data: dict[str, Any],
        state: _StreamState,
    ) -> list[StreamEvent]:
        events: list[StreamEvent] = []

        if event_data.get("usage"):
            state.usage = event_data["usage"]

        choices = event_data.get("choices") or []
        if not choices:
            return events

        choice = choices[0]
        if choice.get("finish_reason"):
            state.finish_reason = choice["finish_reason"]

        delta = choice.get("delta") or {}

        # "reasoning_content": DeepSeek, vLLM; "reasoning": OpenRouter style servers
        reasoning = delta.get("reasoning_content") or delta.get("reasoning")
        if reasoning:
            state.reasoning += reasoning
            events.append(ReasoningDelta(text=reasoning))

        content = delta.get("content")
        if content:
            state.content += content
            events.append(ContentDelta(text=content))

        for tc_delta in delta.get("tool_calls") or []:
            index = tc_delta.get("index", 0)
            acc = state.tool_calls_by_index.setdefault(
                index, {"id": "", "name": "", "arguments": ""}
            )

            # id/name arrive once; arguments are accumulated incrementally
            if tc_delta.get("id") and not acc["id"]:
                acc["id"] = tc_delta["id"]
            func = tc_delta.get("function") or {}
            if func.get("name") and not acc["name"]:
                acc["name"] = func["name"]
            if func.get("arguments"):
                acc["arguments"] += func["arguments"]

            if index not in state.seen_tool_indices and acc["id"] and acc["name"]:
                state.seen_tool_indices.add(index)
                events.append(ToolCallStarted(index=index, id=acc["id"], name=acc["name"]))

        return events

    def _build_stream_message(self, state: _StreamState, elapsed: float) -> Message:
        blocks: list[ContentBlock] = []
        if state.reasoning:
            blocks.append(ThinkingBlock(state.reasoning))
        if state.content:
            blocks.append(TextBlock(state.content))

        for index in sorted(state.tool_calls_by_index):
            tc = state.tool_calls_by_index[index]
            if not tc["id"] or not tc["name"]:
                raise ProviderError(f"Stream ended with incomplete tool call at index {index}")
            blocks.append(
                ToolUseBlock(
                    id=tc["id"],
                    name=tc["name"],
                    input=self._parse_arguments(tc["arguments"]),
                )
            )

        return Message(
            name=ASSISTANT_NAME,
            role=Role.ASSISTANT,
            content=tuple(blocks),
            usage=self._parse_usage(state.usage, elapsed),
        )


class _StreamState:
    """Accumulators for one SSE stream."""

    def __init__(self) -> None:
        self.content = ""
        self.reasoning = ""
        self.tool_calls_by_index: dict[int, dict[str, str]] = {}
        self.seen_tool_indices: set[int] = set()
        self.usage: dict[str, Any] | None = None
        self.event_count = 0
        self.received_done = False
        self.finish_reason: str | None = None


def _elapsed_since(started: float) -> float:
    return asyncio.get_running_loop().time() - started
