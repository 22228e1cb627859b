"""Integration tests for the REPL's suspend/resume handling."""

from typing import Any

import pytest

from reactloop.agent import ReActAgent
from reactloop.cli import repl
from reactloop.config.schema import AgentConfig, Config, ExecutionConfig
from reactloop.core.types import GenerateReason, Message, Role, ToolResultBlock, ToolUseBlock
from reactloop.hooks import Hook, PostReasoningEvent


class ScriptedModel:
    """Mock model that replays a script and records what it was sent."""

    def __init__(self, script: list[Message]) -> None:
        self.script = list(script)
        self.seen: list[list[Message]] = []

    async def complete(self, messages: list[Message], tools: Any = None) -> Message:
        self.seen.append(list(messages))
        return self.script.pop(0)

    async def stream(self, messages, tools=None):  # pragma: no cover - streaming off
        raise AssertionError("stream() not expected")
        yield


def ask_user_call(call_id: str = "c1") -> Message:
    return Message(
        name="assistant",
        role=Role.ASSISTANT,
        content=(ToolUseBlock(id=call_id, name="ask_user", input={"question": "Favourite colour?"}),),
    )


def make_agent(model: ScriptedModel) -> ReActAgent:
    return ReActAgent(
        model,
        config=AgentConfig(stream=False),
        toolkit=repl.build_toolkit(Config()),
        model_execution=ExecutionConfig(),
    )


class TestBuildToolkit:
    """Tests for the REPL's built-in tools."""

    @pytest.mark.asyncio
    async def test_current_time_runs(self):
        toolkit = repl.build_toolkit(Config())
        result = await toolkit.invoke(ToolUseBlock(id="t", name="current_time", input={}))
        assert not result.is_error
        assert "T" in result.text

    def test_ask_user_is_schema_only(self):
        toolkit = repl.build_toolkit(Config())
        assert set(toolkit.names) == {"current_time", "ask_user"}


class TestRunUntilSettled:
    """Tests for run_until_settled()."""

    @pytest.mark.asyncio
    async def test_suspended_tool_answered_by_user(self, monkeypatch: pytest.MonkeyPatch):
        """The user's answer is fed back as the tool result and the agent finishes."""
        prompts: list[str] = []

        async def fake_ask(prompt: str) -> str:
            prompts.append(prompt)
            return "blue"

        monkeypatch.setattr(repl, "_ask", fake_ask)
        model = ScriptedModel([
            ask_user_call(),
            Message.text("assistant", Role.ASSISTANT, "Blue it is."),
        ])
        agent = make_agent(model)

        reply = await repl.run_until_settled(agent, Message.text("user", Role.USER, "Pick a colour"))

        assert reply.generate_reason == GenerateReason.MODEL_STOP
        assert reply.get_text_content() == "Blue it is."
        assert prompts == ["Favourite colour?: "]
        tool_message = model.seen[1][-1]
        assert tool_message.content[0].output[0].text == "blue"

    @pytest.mark.asyncio
    async def test_declined_pause_stops_resuming(self, monkeypatch: pytest.MonkeyPatch):
        class PauseAfterReasoning(Hook):
            async def on_event(self, event):
                if isinstance(event, PostReasoningEvent):
                    event.stop_agent()

        async def decline(prompt: str) -> str:
            return "n"

        monkeypatch.setattr(repl, "_ask", decline)
        agent = make_agent(ScriptedModel([Message.text("assistant", Role.ASSISTANT, "draft")]))
        agent.hooks.register(PauseAfterReasoning())

        reply = await repl.run_until_settled(agent, Message.text("user", Role.USER, "write"))

        assert reply.generate_reason == GenerateReason.REASONING_PAUSED

    @pytest.mark.asyncio
    async def test_only_suspended_calls_prompted(self, monkeypatch: pytest.MonkeyPatch):
        """Calls queued behind a suspended one are run by the agent, not asked for."""
        prompts: list[str] = []

        async def fake_ask(prompt: str) -> str:
            prompts.append(prompt)
            return "green"

        monkeypatch.setattr(repl, "_ask", fake_ask)
        model = ScriptedModel([
            Message(
                name="assistant",
                role=Role.ASSISTANT,
                content=(
                    ToolUseBlock(id="c1", name="ask_user", input={"question": "Colour?"}),
                    ToolUseBlock(id="c2", name="current_time", input={}),
                ),
            ),
            Message.text("assistant", Role.ASSISTANT, "Noted."),
        ])
        agent = make_agent(model)

        reply = await repl.run_until_settled(agent, Message.text("user", Role.USER, "hi"))

        assert reply.generate_reason == GenerateReason.MODEL_STOP
        assert prompts == ["Colour?: "]
        results = {
            r.id: r
            for m in model.seen[1]
            for r in m.get_content_blocks(ToolResultBlock)
        }
        assert results["c1"].text == "green"
        assert not results["c2"].is_error
        assert "T" in results["c2"].text
