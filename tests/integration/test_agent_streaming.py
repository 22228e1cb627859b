"""Integration tests for ReActAgent.stream() and chunk hooks."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import pytest

from reactloop.agent import AgentCompleted, ReActAgent
from reactloop.config.schema import AgentConfig, ExecutionConfig
from reactloop.core.types import (
    ContentDelta,
    GenerateReason,
    Message,
    ReasoningDelta,
    Role,
    StreamComplete,
    StreamEvent,
    TextBlock,
    ThinkingBlock,
    ToolUseBlock,
)
from reactloop.hooks import (
    ActingChunkEvent,
    Hook,
    HookEvent,
    HookPipeline,
    ReasoningChunkEvent,
)
from reactloop.tool import Toolkit


class MockStreamingModel:
    """Mock model streaming scripted replies chunk by chunk.

    Each script entry is (thinking, text, tool_uses). ``complete`` is never
    expected to be called; it fails the test if it is.
    """

    def __init__(self, script: list[tuple[str, str, list[ToolUseBlock]]]) -> None:
        self.script = list(script)
        self.stream_calls = 0

    async def complete(self, messages: list[Message], tools: Any = None) -> Message:
        raise AssertionError("complete() should not be called in streaming mode")

    async def stream(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        self.stream_calls += 1
        thinking, text, tool_uses = self.script.pop(0) if self.script else ("", "done", [])
        if thinking:
            yield ReasoningDelta(text=thinking)
        for word in text.split(" "):
            yield ContentDelta(text=word + " ")
        blocks: list[Any] = []
        if thinking:
            blocks.append(ThinkingBlock(thinking))
        if text:
            blocks.append(TextBlock(text))
        blocks.extend(tool_uses)
        yield StreamComplete(
            message=Message(name="assistant", role=Role.ASSISTANT, content=tuple(blocks))
        )


class ChunkRecorder(Hook):
    def __init__(self) -> None:
        self.chunks: list[HookEvent] = []

    async def on_event(self, event: HookEvent) -> None:
        if isinstance(event, (ReasoningChunkEvent, ActingChunkEvent)):
            self.chunks.append(event)


def make_agent(model: MockStreamingModel, **kwargs: Any) -> ReActAgent:
    return ReActAgent(
        model,
        config=AgentConfig(name="Friday", stream=True),
        model_execution=ExecutionConfig(),
        **kwargs,
    )


class TestStreamingCall:
    """Tests for call() with streaming enabled."""

    @pytest.mark.asyncio
    async def test_reasoning_chunks_fire_hooks(self):
        """Each model delta fires REASONING_CHUNK with accumulated text."""
        recorder = ChunkRecorder()
        model = MockStreamingModel([("", "hello there", [])])
        agent = make_agent(model, hooks=HookPipeline(hooks=[recorder]))

        result = await agent.call(Message.text("user", Role.USER, "hi"))

        assert result.generate_reason == GenerateReason.MODEL_STOP
        assert result.get_text_content() == "hello there"
        texts = [e.chunk.text for e in recorder.chunks]
        assert texts == ["hello ", "there "]
        assert recorder.chunks[-1].accumulated == "hello there "

    @pytest.mark.asyncio
    async def test_thinking_accumulated_separately(self):
        """Reasoning deltas accumulate apart from content deltas."""
        recorder = ChunkRecorder()
        model = MockStreamingModel([("let me think", "answer", [])])
        agent = make_agent(model, hooks=HookPipeline(hooks=[recorder]))

        await agent.call(Message.text("user", Role.USER, "hi"))

        first, second = recorder.chunks
        assert isinstance(first.chunk, ReasoningDelta)
        assert first.accumulated == "let me think"
        assert second.accumulated == "answer "

    @pytest.mark.asyncio
    async def test_no_chunks_without_streaming(self):
        """With streaming off, no chunk events fire."""
        recorder = ChunkRecorder()

        class CompleteModel(MockStreamingModel):
            async def complete(self, messages, tools=None):
                return Message.text("assistant", Role.ASSISTANT, "plain")

        agent = ReActAgent(
            CompleteModel([]),
            config=AgentConfig(stream=False),
            hooks=HookPipeline(hooks=[recorder]),
        )

        result = await agent.call(Message.text("user", Role.USER, "hi"))

        assert result.get_text_content() == "plain"
        assert recorder.chunks == []


class TestAgentStream:
    """Tests for the stream() async iterator."""

    @pytest.mark.asyncio
    async def test_yields_chunks_then_completed(self):
        """stream() yields chunk events in order, then AgentCompleted."""
        model = MockStreamingModel([("", "one two three", [])])
        agent = make_agent(model)

        events = [e async for e in agent.stream(Message.text("user", Role.USER, "hi"))]

        assert isinstance(events[-1], AgentCompleted)
        assert events[-1].message.generate_reason == GenerateReason.MODEL_STOP
        chunk_texts = [e.chunk.text for e in events[:-1]]
        assert chunk_texts == ["one ", "two ", "three "]
        assert not agent.is_running

    @pytest.mark.asyncio
    async def test_streams_even_when_config_disables_it(self):
        """stream() forces streaming model calls."""
        model = MockStreamingModel([("", "forced", [])])
        agent = ReActAgent(model, config=AgentConfig(stream=False), model_execution=ExecutionConfig())

        events = [e async for e in agent.stream(Message.text("user", Role.USER, "hi"))]

        assert model.stream_calls == 1
        assert isinstance(events[0], ReasoningChunkEvent)

    @pytest.mark.asyncio
    async def test_acting_chunks_from_streaming_tool(self):
        """An async generator tool emits ACTING_CHUNK events with cumulative output."""
        toolkit = Toolkit()

        @toolkit.tool
        async def count(n: int):
            """Count up to n."""
            text = ""
            for i in range(1, n + 1):
                text += str(i)
                yield text

        model = MockStreamingModel([
            ("", "counting", [ToolUseBlock(id="c1", name="count", input={"n": 3})]),
            ("", "done", []),
        ])
        agent = make_agent(model, toolkit=toolkit)

        events = [e async for e in agent.stream(Message.text("user", Role.USER, "count"))]

        acting = [e for e in events if isinstance(e, ActingChunkEvent)]
        assert [e.chunk.text for e in acting] == ["1", "12", "123"]
        assert all(e.tool_use.id == "c1" for e in acting)
        completed = events[-1]
        assert isinstance(completed, AgentCompleted)
        assert completed.message.get_text_content() == "done"

    @pytest.mark.asyncio
    async def test_stream_propagates_errors(self):
        """Errors raised by the call surface from the iterator."""
        from reactloop.core.errors import ProviderError

        class FailingModel(MockStreamingModel):
            async def stream(self, messages, tools=None):
                raise ProviderError("boom")
                yield  # pragma: no cover

        agent = make_agent(FailingModel([]))

        with pytest.raises(ProviderError):
            async for _ in agent.stream(Message.text("user", Role.USER, "hi")):
                pass
        assert not agent.is_running

    @pytest.mark.asyncio
    async def test_early_close_cancels_call(self):
        """Closing the iterator early cancels the running call."""
        started = asyncio.Event()

        class SlowModel(MockStreamingModel):
            async def stream(self, messages, tools=None):
                yield ContentDelta(text="first ")
                started.set()
                await asyncio.Event().wait()
                yield StreamComplete(message=Message.text("assistant", Role.ASSISTANT, "x"))

        agent = make_agent(SlowModel([]))
        stream = agent.stream(Message.text("user", Role.USER, "hi"))

        first = await stream.__anext__()
        assert isinstance(first, ReasoningChunkEvent)
        await started.wait()
        await stream.aclose()

        assert not agent.is_running
