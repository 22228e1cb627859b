"""Unit tests for the hook pipeline and built-in hooks."""

import asyncio
import logging
from types import SimpleNamespace

import pytest

from reactloop.config.schema import HookConfig
from reactloop.core.errors import HookError
from reactloop.core.types import GenerateReason, Message, Role, ToolResultBlock, ToolUseBlock
from reactloop.hooks import (
    ErrorEvent,
    Hook,
    HookEventType,
    HookPipeline,
    LoggingHook,
    PostActingEvent,
    PostCallEvent,
    PreActingEvent,
    PreCallEvent,
    PreReasoningEvent,
    describe_event,
)

AGENT = SimpleNamespace(name="tester")


class RecordingHook(Hook):
    """Appends its label to a shared list on every event."""

    def __init__(self, label: str, log: list[str], priority: int | None = None) -> None:
        self.label = label
        self.log = log
        if priority is not None:
            self.priority = priority

    async def on_event(self, event):
        self.log.append(self.label)
        return None


def tool_use(id: str = "t1", **input) -> ToolUseBlock:
    return ToolUseBlock(id=id, name="echo", input=input)


class TestOrdering:
    """Tests for priority ordering."""

    @pytest.mark.asyncio
    async def test_ascending_priority(self):
        """Lower priority values run first regardless of registration order."""
        log: list[str] = []
        pipeline = HookPipeline()
        pipeline.register(RecordingHook("late", log, priority=200))
        pipeline.register(RecordingHook("early", log, priority=5))
        pipeline.register(RecordingHook("default", log))

        await pipeline.fire(PreCallEvent(agent=AGENT))

        assert log == ["early", "default", "late"]

    @pytest.mark.asyncio
    async def test_ties_run_in_registration_order(self):
        log: list[str] = []
        pipeline = HookPipeline(hooks=[RecordingHook(str(i), log) for i in range(5)])

        await pipeline.fire(PreCallEvent(agent=AGENT))

        assert log == ["0", "1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_register_priority_overrides_attribute(self):
        log: list[str] = []
        pipeline = HookPipeline()
        pipeline.register(RecordingHook("a", log, priority=1))
        pipeline.register(RecordingHook("b", log, priority=50), priority=0)

        await pipeline.fire(PreCallEvent(agent=AGENT))

        assert log == ["b", "a"]

    def test_default_priority_from_config(self):
        pipeline = HookPipeline(HookConfig(default_priority=7))
        late = RecordingHook("late", [], priority=8)
        plain = RecordingHook("plain", [])
        pipeline.register(late)
        pipeline.register(plain)
        assert pipeline.hooks == [plain, late]

    def test_unregister(self):
        hook = RecordingHook("a", [])
        pipeline = HookPipeline(hooks=[hook])
        pipeline.unregister(hook)
        assert len(pipeline) == 0

    def test_register_rejects_objects_without_on_event(self):
        with pytest.raises(TypeError):
            HookPipeline().register(object())


class TestEventReplacement:
    """Tests for mutable and notify-only events."""

    @pytest.mark.asyncio
    async def test_mutable_event_replaced_for_later_hooks(self):
        seen: list[dict] = []

        class Rewrite(Hook):
            priority = 1

            async def on_event(self, event):
                return PreActingEvent(agent=event.agent, tool_use=tool_use(x=2))

        class Observe(Hook):
            priority = 2

            async def on_event(self, event):
                seen.append(event.tool_use.input)

        pipeline = HookPipeline(hooks=[Observe(), Rewrite()])
        result = await pipeline.fire(PreActingEvent(agent=AGENT, tool_use=tool_use(x=1)))

        assert seen == [{"x": 2}]
        assert result.tool_use.input == {"x": 2}

    @pytest.mark.asyncio
    async def test_in_place_edit_visible(self):
        class Inject(Hook):
            def on_event(self, event):
                event.messages.append(Message.text("hook", Role.SYSTEM, "extra"))

        event = PreReasoningEvent(agent=AGENT, messages=[])
        result = await HookPipeline(hooks=[Inject()]).fire(event)

        assert [m.get_text_content() for m in result.messages] == ["extra"]

    @pytest.mark.asyncio
    async def test_notify_only_return_ignored(self):
        """Return values from hooks on notify-only events are discarded."""
        original = PreCallEvent(agent=AGENT)

        class Replace(Hook):
            async def on_event(self, event):
                return PreCallEvent(agent=AGENT, messages=(Message.text("x", Role.USER, "x"),))

        result = await HookPipeline(hooks=[Replace()]).fire(original)

        assert result is original

    @pytest.mark.asyncio
    async def test_wrong_return_type_raises(self):
        class Wrong(Hook):
            async def on_event(self, event):
                return "not an event"

        with pytest.raises(HookError, match="returned str"):
            await HookPipeline(hooks=[Wrong()]).fire(PreActingEvent(agent=AGENT, tool_use=tool_use()))


class TestStop:
    """Tests for stop_agent()."""

    @pytest.mark.asyncio
    async def test_stop_skips_remaining_hooks(self):
        log: list[str] = []

        class Stopper(Hook):
            priority = 1

            async def on_event(self, event):
                event.stop_agent()

        pipeline = HookPipeline(hooks=[Stopper(), RecordingHook("after", log, priority=2)])
        event = PostActingEvent(
            agent=AGENT,
            tool_use=tool_use(),
            result=ToolResultBlock(id="t1", name="echo"),
        )

        result = await pipeline.fire(event)

        assert result.stopped is True
        assert log == []

    def test_events_start_unstopped(self):
        event = PostActingEvent(
            agent=AGENT, tool_use=tool_use(), result=ToolResultBlock(id="t1", name="echo")
        )
        assert event.stopped is False
        assert event.event_type == HookEventType.POST_ACTING


class TestFailures:
    """Tests for hook failures and timeouts."""

    @pytest.mark.asyncio
    async def test_exception_wrapped_in_hook_error(self):
        class Broken(Hook):
            async def on_event(self, event):
                raise ValueError("boom")

        with pytest.raises(HookError) as exc_info:
            await HookPipeline(hooks=[Broken()]).fire(PreCallEvent(agent=AGENT))

        assert exc_info.value.hook_name == "Broken"
        assert "ValueError: boom" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_timeout(self):
        class Slow(Hook):
            async def on_event(self, event):
                await asyncio.sleep(10)

        pipeline = HookPipeline(HookConfig(timeout=0.01), hooks=[Slow()])
        with pytest.raises(HookError, match="timed out"):
            await pipeline.fire(PreCallEvent(agent=AGENT))

    @pytest.mark.asyncio
    async def test_error_event_failures_logged(self, caplog):
        """Failing hooks on ErrorEvent are logged and later hooks still run."""
        log: list[str] = []

        class Broken(Hook):
            priority = 1

            async def on_event(self, event):
                raise RuntimeError("hook bug")

        pipeline = HookPipeline(hooks=[Broken(), RecordingHook("after", log, priority=2)])
        with caplog.at_level(logging.ERROR, logger="reactloop.hooks.pipeline"):
            await pipeline.fire(ErrorEvent(agent=AGENT, error=ValueError("original")))

        assert log == ["after"]
        assert any("Error hook failed" in r.message for r in caplog.records)


class TestLoggingHook:
    """Tests for LoggingHook and describe_event."""

    def test_describe_events(self):
        reply = Message.text("a", Role.ASSISTANT, "hi", generate_reason=GenerateReason.MODEL_STOP)
        assert describe_event(PostCallEvent(agent=AGENT, message=reply)) == "call finished: model_stop"
        assert describe_event(PreActingEvent(agent=AGENT, tool_use=tool_use("c9"))) == "acting: echo [c9]"

    @pytest.mark.asyncio
    async def test_logs_with_agent_name(self, caplog):
        hook = LoggingHook(level=logging.INFO)
        with caplog.at_level(logging.INFO, logger="reactloop.hooks.logging_hook"):
            await hook.on_event(PreCallEvent(agent=AGENT))

        assert "[tester] call started with 0 input message(s)" in caplog.text

    @pytest.mark.asyncio
    async def test_errors_logged_at_warning(self, caplog):
        hook = LoggingHook()
        with caplog.at_level(logging.WARNING, logger="reactloop.hooks.logging_hook"):
            await hook.on_event(ErrorEvent(agent=AGENT, error=RuntimeError("bad")))

        assert caplog.records[0].levelno == logging.WARNING
        assert "RuntimeError: bad" in caplog.text
