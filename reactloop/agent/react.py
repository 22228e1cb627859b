"""ReAct agent: alternating reasoning and acting over a shared memory.

One call runs the loop below until the model answers without tool calls, a
tool suspends, a hook pauses, the caller interrupts, or the iteration cap is
reached:

    PRE_CALL
    repeat up to max_iters:
        PRE_REASONING -> model -> POST_REASONING
        no tool uses: POST_CALL, return MODEL_STOP
        for each tool use: PRE_ACTING -> toolkit -> POST_ACTING
    POST_CALL, return MAX_ITERATIONS

Everything that outlives a call is in memory. Tool uses without results are
"pending"; a later ``call()`` either supplies their results, re-attempts
them, or (when a new user turn arrives instead) closes them as cancelled.

Example:
    agent = ReActAgent(model, config=AgentConfig(sys_prompt="Be brief."), toolkit=toolkit)
    reply = await agent.call(Message.text("user", Role.USER, "What is 2 + 2?"))
    if reply.generate_reason == GenerateReason.TOOL_SUSPENDED:
        ...
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from reactloop.agent.events import AgentCompleted, AgentStreamEvent
from reactloop.agent.state import RunState, find_pending_tool_uses
from reactloop.config.schema import DEFAULT_MODEL_EXECUTION, AgentConfig, Config, ExecutionConfig
from reactloop.core.cancel import CancellationToken
from reactloop.core.constants import CANCELLED_TOOL_TEXT, INTERRUPT_REPLY
from reactloop.core.errors import (
    AgentBusyError,
    HookError,
    LoadError,
    ProviderError,
    ResumeError,
)
from reactloop.core.types import (
    ContentDelta,
    GenerateReason,
    Message,
    ReasoningDelta,
    Role,
    StreamComplete,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from reactloop.core.utils import calculate_backoff, run_with_timeout
from reactloop.hooks.events import (
    ActingChunkEvent,
    ErrorEvent,
    HookEventType,
    PostActingEvent,
    PostCallEvent,
    PostReasoningEvent,
    PreActingEvent,
    PreCallEvent,
    PreReasoningEvent,
    ReasoningChunkEvent,
)
from reactloop.hooks.pipeline import HookPipeline
from reactloop.memory.base import Memory
from reactloop.memory.in_memory import InMemoryMemory
from reactloop.tool.errors import ToolSuspended
from reactloop.tool.toolkit import ChunkCallback, Toolkit

if TYPE_CHECKING:
    from reactloop.core.interfaces import ChatModel

logger = logging.getLogger(__name__)

EventSink = Callable[[AgentStreamEvent], None]


class ReActAgent:
    """Agent running the ReAct loop over a model, a toolkit and a memory.

    Attributes:
        model: Chat model used for reasoning.
        toolkit: Tools the model may call.
        memory: Message log shared by all calls.
        hooks: Hook pipeline fired at every loop phase.
    """

    def __init__(
        self,
        model: ChatModel,
        *,
        config: AgentConfig | None = None,
        toolkit: Toolkit | None = None,
        memory: Memory | None = None,
        hooks: HookPipeline | None = None,
        model_execution: ExecutionConfig | None = None,
        **overrides: Any,
    ) -> None:
        """Create an agent.

        Args:
            model: Chat model adapter.
            config: Agent settings. Keyword overrides (``name``,
                ``sys_prompt``, ``max_iters``, ``stream``) are applied on top
                and validated the same way.
            toolkit: Tools (default: empty toolkit).
            memory: Message log (default: InMemoryMemory).
            hooks: Hook pipeline (default: no hooks).
            model_execution: Timeout/retry policy for model calls.

        Raises:
            pydantic.ValidationError: If the settings are invalid, e.g.
                ``max_iters < 1``.
        """
        config = config or AgentConfig()
        if overrides:
            config = AgentConfig(**{**config.model_dump(), **overrides})
        self._config = config
        self.model = model
        self.toolkit = toolkit if toolkit is not None else Toolkit()
        self.memory = memory if memory is not None else InMemoryMemory()
        self.hooks = hooks if hooks is not None else HookPipeline()
        self._model_execution = model_execution or DEFAULT_MODEL_EXECUTION

        self._lock = threading.Lock()
        self._token = CancellationToken()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._sink: EventSink | None = None
        self._streaming = False

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        model: ChatModel | None = None,
        toolkit: Toolkit | None = None,
        memory: Memory | None = None,
        hooks: HookPipeline | None = None,
    ) -> ReActAgent:
        """Build an agent from a root Config.

        Unless given, the model is created from ``config.default_model`` and
        the toolkit and hook pipeline from their config sections.
        """
        if model is None:
            from reactloop.provider import create_provider

            model = create_provider(config)
        return cls(
            model,
            config=config.agent,
            toolkit=toolkit if toolkit is not None else Toolkit(config.toolkit, config.tool_execution),
            memory=memory,
            hooks=hooks if hooks is not None else HookPipeline(config.hooks),
            model_execution=config.model_execution,
        )

    # === Properties ===

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def sys_prompt(self) -> str:
        return self._config.sys_prompt

    @property
    def max_iters(self) -> int:
        return self._config.max_iters

    @property
    def model_execution(self) -> ExecutionConfig:
        return self._model_execution

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def __repr__(self) -> str:
        return f"ReActAgent(name={self.name!r}, tools={self.toolkit.names})"

    # === Public API ===

    async def call(self, msg: Message | Sequence[Message] | None = None) -> Message:
        """Run one call of the loop.

        Args:
            msg: New input. A message holding ToolResultBlocks answers pending
                tool uses. ``None`` resumes from memory alone.

        Returns:
            The reply, with ``generate_reason`` set.

        Raises:
            AgentBusyError: If another call on this agent is in progress.
            ResumeError: If supplied tool results match no pending tool use.
            ProviderError: If the model keeps failing or violates the protocol.
            ToolExecutionError: If a tool keeps failing.
            HookError: If a hook fails or times out.
        """
        return await self._guarded_call(msg, sink=None)

    async def stream(
        self, msg: Message | Sequence[Message] | None = None
    ) -> AsyncIterator[AgentStreamEvent]:
        """Streaming variant of ``call``.

        Yields reasoning and acting chunk events in emission order, then one
        ``AgentCompleted`` carrying the same reply ``call`` would return.
        Closing the iterator early cancels the call.
        """
        queue: asyncio.Queue[AgentStreamEvent | None] = asyncio.Queue()

        async def run() -> Message:
            try:
                return await self._guarded_call(msg, sink=queue.put_nowait)
            finally:
                queue.put_nowait(None)

        task = asyncio.create_task(run())
        try:
            while (event := await queue.get()) is not None:
                yield event
            yield AgentCompleted(await task)
        finally:
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

    def interrupt(self) -> None:
        """Request the running call to stop at its next checkpoint.

        Safe to call from any thread. An in-flight model call is cancelled;
        in-flight tools finish. Does nothing when the agent is idle.
        """
        loop = self._loop
        if loop is None or not self.is_running:
            logger.debug("Interrupt ignored: agent '%s' is idle", self.name)
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        logger.info("Interrupt requested for agent '%s'", self.name)
        if running is loop:
            self._token.cancel()
        else:
            loop.call_soon_threadsafe(self._token.cancel)

    def state_dict(self) -> dict[str, Any]:
        """Snapshot of the agent's persistent state (its memory)."""
        return {"name": self.name, "memory": self.memory.state_dict()}

    def load_state_dict(self, state: dict[str, Any]) -> None:
        """Restore state produced by ``state_dict``.

        Raises:
            AgentBusyError: If a call is in progress.
            LoadError: If the state is malformed.
        """
        if self.is_running:
            raise AgentBusyError(self.name)
        memory_state = state.get("memory")
        if not isinstance(memory_state, dict):
            raise LoadError("Agent state must contain a 'memory' dict")
        self.memory.load_state_dict(memory_state)

    # === Call Lifecycle ===

    async def _guarded_call(
        self,
        msg: Message | Sequence[Message] | None,
        sink: EventSink | None,
    ) -> Message:
        if not self._lock.acquire(blocking=False):
            raise AgentBusyError(self.name)
        try:
            self._sink = sink
            self._streaming = sink is not None or self._config.stream
            self._token.reset()
            self._loop = asyncio.get_running_loop()
            try:
                return await self._run(msg)
            except Exception as e:
                logger.error("Agent '%s' call failed: %s", self.name, e)
                await self.hooks.fire(ErrorEvent(agent=self, error=e))
                raise
        finally:
            self._loop = None
            self._sink = None
            self._lock.release()

    async def _run(self, msg: Message | Sequence[Message] | None) -> Message:
        inputs = _normalize_input(msg)
        state = RunState(max_iters=self.max_iters)
        pending = self._accept_input(inputs)

        await self.hooks.fire(PreCallEvent(agent=self, messages=tuple(inputs)))

        if pending:
            logger.debug("Resuming %d pending tool call(s)", len(pending))
            reply = await self._acting(state, pending)
            if reply is not None:
                return await self._finish(reply)

        while not state.exhausted:
            if self._token.is_cancelled:
                return await self._finish(self._interrupted_reply())

            state.iteration += 1
            logger.debug("Agent '%s' iteration %d/%d", self.name, state.iteration, state.max_iters)

            reasoning = await self._reasoning()
            if reasoning is None:
                return await self._finish(self._interrupted_reply())

            post = await self.hooks.fire(PostReasoningEvent(agent=self, message=reasoning))
            reasoning = post.message
            self.memory.add(reasoning)
            state.last_reasoning = reasoning

            if post.stopped:
                return await self._finish(reasoning.with_reason(GenerateReason.REASONING_PAUSED))

            tool_uses = reasoning.get_content_blocks(ToolUseBlock)
            if not tool_uses:
                return await self._finish(reasoning.with_reason(GenerateReason.MODEL_STOP))

            reply = await self._acting(state, tool_uses)
            if reply is not None:
                return await self._finish(reply)

        logger.warning("Agent '%s' reached max_iters=%d", self.name, state.max_iters)
        assert state.last_reasoning is not None
        return await self._finish(state.last_reasoning.with_reason(GenerateReason.MAX_ITERATIONS))

    def _accept_input(self, inputs: list[Message]) -> list[ToolUseBlock]:
        """Add input to memory and return the tool uses still to execute.

        Raises:
            ResumeError: If supplied results do not answer pending tool uses.
                Memory is left untouched.
        """
        _, pending = find_pending_tool_uses(self.memory.get_memory())
        supplied = [r for m in inputs for r in m.get_content_blocks(ToolResultBlock)]

        if supplied:
            pending_ids = {tu.id for tu in pending}
            seen: set[str] = set()
            for result in supplied:
                if result.id not in pending_ids:
                    raise ResumeError(
                        f"Tool result '{result.id}' ({result.name}) matches no pending tool call"
                    )
                if result.id in seen:
                    raise ResumeError(f"Duplicate tool result for '{result.id}'")
                seen.add(result.id)
            self.memory.add(inputs)
            return [tu for tu in pending if tu.id not in seen]

        if inputs and pending:
            # A new turn abandons the pending calls
            logger.info("Cancelling %d pending tool call(s) for new input", len(pending))
            for tool_use in pending:
                self._record_result(
                    ToolResultBlock(
                        id=tool_use.id,
                        name=tool_use.name,
                        output=(TextBlock(CANCELLED_TOOL_TEXT),),
                        is_error=True,
                    )
                )
            pending = []

        self.memory.add(inputs)
        return pending

    async def _finish(self, reply: Message) -> Message:
        logger.debug(
            "Agent '%s' returning: %s",
            self.name,
            reply.generate_reason.value if reply.generate_reason else None,
        )
        await self.hooks.fire(PostCallEvent(agent=self, message=reply))
        return reply

    def _interrupted_reply(self) -> Message:
        return Message.text(
            self.name,
            Role.ASSISTANT,
            INTERRUPT_REPLY,
            generate_reason=GenerateReason.INTERRUPTED,
        )

    def _pending_reply(
        self,
        state: RunState,
        pending: list[ToolUseBlock],
        reason: GenerateReason,
    ) -> Message:
        metadata: dict[str, Any] = {}
        if state.suspended:
            metadata["suspended"] = dict(state.suspended)
        return Message(
            name=self.name,
            role=Role.ASSISTANT,
            content=(*state.completed, *pending),
            metadata=metadata,
            generate_reason=reason,
        )

    # === Reasoning ===

    async def _reasoning(self) -> Message | None:
        """Run one model call. Returns None if interrupted."""
        messages = self.memory.get_memory()
        if self.sys_prompt:
            messages.insert(0, Message.text("system", Role.SYSTEM, self.sys_prompt))

        event = await self.hooks.fire(
            PreReasoningEvent(agent=self, messages=messages, tools=self.toolkit.get_definitions())
        )
        if self._token.is_cancelled:
            return None

        task = asyncio.create_task(self._call_model(event.messages, event.tools or None))
        cancel_model = task.cancel
        self._token.on_cancel(cancel_model)
        try:
            message = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if self._token.is_cancelled and (current is None or current.cancelling() == 0):
                logger.info("Model call interrupted for agent '%s'", self.name)
                return None
            raise
        finally:
            self._token.remove_callback(cancel_model)

        _check_tool_uses(message)
        return replace(message, name=self.name, role=Role.ASSISTANT)

    async def _call_model(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
    ) -> Message:
        policy = self._model_execution
        last_error: Exception | None = None

        for attempt in range(policy.max_attempts):
            emitted = [False]
            try:
                if self._streaming:
                    call = self._stream_model(messages, tools, emitted)
                else:
                    call = self.model.complete(messages, tools)
                return await run_with_timeout(call, policy.timeout)
            except HookError:
                raise
            except TimeoutError as e:
                last_error = ProviderError(f"Model call timed out after {policy.timeout}s")
                last_error.__cause__ = e
            except Exception as e:
                last_error = e

            # Chunks already delivered cannot be taken back
            if emitted[0] or attempt + 1 >= policy.max_attempts:
                break
            delay = calculate_backoff(
                attempt,
                policy.initial_backoff,
                policy.backoff_multiplier,
                policy.max_backoff,
            )
            logger.warning(
                "Model call failed (%s), retrying in %.1fs (attempt %d/%d)",
                last_error, delay, attempt + 1, policy.max_attempts,
            )
            await asyncio.sleep(delay)

        assert last_error is not None
        raise last_error

    async def _stream_model(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
        emitted: list[bool],
    ) -> Message:
        text = ""
        thinking = ""
        final: Message | None = None

        async for event in self.model.stream(messages, tools):
            match event:
                case ContentDelta():
                    text += event.text
                    emitted[0] = True
                    await self._emit(ReasoningChunkEvent(agent=self, chunk=event, accumulated=text))
                case ReasoningDelta():
                    thinking += event.text
                    emitted[0] = True
                    await self._emit(
                        ReasoningChunkEvent(agent=self, chunk=event, accumulated=thinking)
                    )
                case StreamComplete():
                    final = event.message

        if final is None:
            raise ProviderError("Model stream ended without a complete message")
        return final

    async def _emit(self, event: ReasoningChunkEvent | ActingChunkEvent) -> None:
        await self.hooks.fire(event)
        if self._sink is not None:
            self._sink(event)

    # === Acting ===

    async def _acting(self, state: RunState, tool_uses: list[ToolUseBlock]) -> Message | None:
        """Execute tool uses. Returns a reply if the call must return now."""
        state.completed = []
        state.suspended = {}
        if self.toolkit.parallel and len(tool_uses) > 1:
            return await self._act_parallel(state, tool_uses)
        return await self._act_sequential(state, tool_uses)

    async def _act_sequential(
        self, state: RunState, tool_uses: list[ToolUseBlock]
    ) -> Message | None:
        for i, original in enumerate(tool_uses):
            if self._token.is_cancelled:
                return self._interrupted_reply()

            tool_use = await self._pre_acting(original)
            if self._token.is_cancelled:
                return self._interrupted_reply()
            try:
                result = await self.toolkit.invoke(tool_use, on_chunk=self._chunk_callback(tool_use))
            except ToolSuspended as e:
                logger.info("Tool '%s' (%s) suspended: %s", tool_use.name, tool_use.id, e.reason)
                state.suspended[original.id] = e.reason
                return self._pending_reply(state, tool_uses[i:], GenerateReason.TOOL_SUSPENDED)

            post = await self._post_acting(tool_use, result)
            self._record_result(post.result)
            state.completed.append(post.result)
            if post.stopped:
                return self._pending_reply(state, tool_uses[i + 1:], GenerateReason.ACTING_PAUSED)

        return None

    async def _act_parallel(
        self, state: RunState, tool_uses: list[ToolUseBlock]
    ) -> Message | None:
        if self._token.is_cancelled:
            return self._interrupted_reply()

        prepared = [await self._pre_acting(tu) for tu in tool_uses]
        if self._token.is_cancelled:
            return self._interrupted_reply()

        semaphore = asyncio.Semaphore(self.toolkit.max_concurrent)

        async def execute_one(tool_use: ToolUseBlock) -> ToolResultBlock:
            async with semaphore:
                return await self.toolkit.invoke(
                    tool_use, on_chunk=self._chunk_callback(tool_use)
                )

        outcomes = await asyncio.gather(
            *[execute_one(tu) for tu in prepared],
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException) and not isinstance(outcome, ToolSuspended):
                raise outcome

        pending: list[ToolUseBlock] = []
        stopped = False
        for original, tool_use, outcome in zip(tool_uses, prepared, outcomes):
            if isinstance(outcome, ToolSuspended):
                logger.info("Tool '%s' (%s) suspended: %s", tool_use.name, tool_use.id, outcome.reason)
                state.suspended[original.id] = outcome.reason
                pending.append(original)
                continue

            # Every completed result gets its own POST_ACTING chain, even after a stop.
            post = await self._post_acting(tool_use, outcome)
            stopped = stopped or post.stopped
            self._record_result(post.result)
            state.completed.append(post.result)

        if pending:
            return self._pending_reply(state, pending, GenerateReason.TOOL_SUSPENDED)
        if stopped:
            return self._pending_reply(state, [], GenerateReason.ACTING_PAUSED)
        return None

    async def _pre_acting(self, tool_use: ToolUseBlock) -> ToolUseBlock:
        event = await self.hooks.fire(PreActingEvent(agent=self, tool_use=tool_use))
        if event.tool_use.id != tool_use.id:
            raise HookError(
                HookEventType.PRE_ACTING.value,
                f"tool use id changed from '{tool_use.id}' to '{event.tool_use.id}'",
            )
        return event.tool_use

    async def _post_acting(self, tool_use: ToolUseBlock, result: ToolResultBlock) -> PostActingEvent:
        event = await self.hooks.fire(
            PostActingEvent(agent=self, tool_use=tool_use, result=result)
        )
        if event.result.id != tool_use.id:
            raise HookError(
                HookEventType.POST_ACTING.value,
                f"tool result id changed from '{tool_use.id}' to '{event.result.id}'",
            )
        return event

    def _chunk_callback(self, tool_use: ToolUseBlock) -> ChunkCallback | None:
        if not self._streaming:
            return None

        async def on_chunk(chunk: ToolResultBlock) -> None:
            await self._emit(ActingChunkEvent(agent=self, tool_use=tool_use, chunk=chunk))

        return on_chunk

    def _record_result(self, result: ToolResultBlock) -> None:
        self.memory.add(Message(name=self.name, role=Role.TOOL, content=(result,)))


def _normalize_input(msg: Message | Sequence[Message] | None) -> list[Message]:
    if msg is None:
        return []
    if isinstance(msg, Message):
        return [msg]
    messages = list(msg)
    for m in messages:
        if not isinstance(m, Message):
            raise TypeError(f"Agent input must be Message objects, got {type(m).__name__}")
    return messages


def _check_tool_uses(message: Message) -> None:
    """Reject model output whose tool uses cannot be answered unambiguously.

    Raises:
        ProviderError: On empty or duplicate tool use ids.
    """
    ids = [tu.id for tu in message.get_content_blocks(ToolUseBlock)]
    if any(not i for i in ids):
        raise ProviderError("Model returned a tool call without an id")
    if len(set(ids)) != len(ids):
        raise ProviderError(f"Model returned duplicate tool call ids: {ids}")
