"""Hook events fired by the ReAct loop.

Each loop phase fires one event type, tagged by ``HookEventType``. Two kinds
exist:

- Notify-only events are frozen. Hooks observe them; whatever a hook
  returns is ignored.
- Mutable events may be edited in place or replaced by returning a new event
  of the same type. ``PostReasoningEvent`` and ``PostActingEvent`` also offer
  ``stop_agent()``, which ends the phase and pauses the loop.

The set of events is closed: ``HookEvent`` is the union of all of them, so
handlers can ``match`` on it and end with ``assert_never``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from reactloop.core.types import (
    ContentDelta,
    GenerateReason,
    Message,
    ReasoningDelta,
    ToolResultBlock,
    ToolUseBlock,
)

if TYPE_CHECKING:
    from reactloop.agent.react import ReActAgent


class HookEventType(Enum):
    """Loop phases at which hooks fire."""

    PRE_CALL = "pre_call"
    POST_CALL = "post_call"
    PRE_REASONING = "pre_reasoning"
    POST_REASONING = "post_reasoning"
    REASONING_CHUNK = "reasoning_chunk"
    PRE_ACTING = "pre_acting"
    POST_ACTING = "post_acting"
    ACTING_CHUNK = "acting_chunk"
    ERROR = "error"


class _EventBase:
    event_type: ClassVar[HookEventType]
    notify_only: ClassVar[bool] = True


class _Stoppable:
    """Mixin for mutable events that can pause the loop."""

    _stopped: bool

    def stop_agent(self) -> None:
        """Stop the current phase; the call returns with a paused reason."""
        self._stopped = True

    @property
    def stopped(self) -> bool:
        return self._stopped


# --- Notify-only events ---


@dataclass(frozen=True)
class PreCallEvent(_EventBase):
    """Fired once at the start of a call, after input is added to memory.

    Attributes:
        agent: The running agent.
        messages: The input messages of this call (empty when resuming).
    """

    event_type: ClassVar[HookEventType] = HookEventType.PRE_CALL

    agent: ReActAgent
    messages: tuple[Message, ...] = ()


@dataclass(frozen=True)
class PostCallEvent(_EventBase):
    """Fired once when a call returns normally, whatever the reason.

    Attributes:
        agent: The running agent.
        message: The message returned to the caller.
    """

    event_type: ClassVar[HookEventType] = HookEventType.POST_CALL

    agent: ReActAgent
    message: Message

    @property
    def reason(self) -> GenerateReason | None:
        return self.message.generate_reason


@dataclass(frozen=True)
class ReasoningChunkEvent(_EventBase):
    """Fired for each incremental model output chunk in streaming mode.

    Attributes:
        agent: The running agent.
        chunk: The content or reasoning delta.
        accumulated: All text of the same kind received so far in this step.
    """

    event_type: ClassVar[HookEventType] = HookEventType.REASONING_CHUNK

    agent: ReActAgent
    chunk: ContentDelta | ReasoningDelta
    accumulated: str = ""


@dataclass(frozen=True)
class ActingChunkEvent(_EventBase):
    """Fired for each intermediate result of a streaming tool.

    Attributes:
        agent: The running agent.
        tool_use: The tool call producing the chunk.
        chunk: Cumulative output so far.
    """

    event_type: ClassVar[HookEventType] = HookEventType.ACTING_CHUNK

    agent: ReActAgent
    tool_use: ToolUseBlock
    chunk: ToolResultBlock


@dataclass(frozen=True)
class ErrorEvent(_EventBase):
    """Fired when a call is about to raise.

    Hooks cannot suppress the error; their own failures are logged and the
    original error still propagates.

    Attributes:
        agent: The running agent.
        error: The exception about to propagate.
    """

    event_type: ClassVar[HookEventType] = HookEventType.ERROR

    agent: ReActAgent
    error: BaseException


# --- Mutable events ---


@dataclass
class PreReasoningEvent(_EventBase):
    """Fired before each model call.

    Hooks may edit or replace ``messages`` (the exact list sent to the model,
    system prompt included) and ``tools``. Memory itself is not changed.
    """

    event_type: ClassVar[HookEventType] = HookEventType.PRE_REASONING
    notify_only: ClassVar[bool] = False

    agent: ReActAgent
    messages: list[Message]
    tools: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class PostReasoningEvent(_Stoppable, _EventBase):
    """Fired after each model call with the reasoning message.

    Hooks may replace ``message`` before it is stored, or call
    ``stop_agent()`` to return with ``REASONING_PAUSED``.
    """

    event_type: ClassVar[HookEventType] = HookEventType.POST_REASONING
    notify_only: ClassVar[bool] = False

    agent: ReActAgent
    message: Message
    _stopped: bool = field(default=False, init=False, repr=False)


@dataclass
class PreActingEvent(_EventBase):
    """Fired before each tool call.

    Hooks may replace ``tool_use`` (typically its ``input``); the call id
    must be kept.
    """

    event_type: ClassVar[HookEventType] = HookEventType.PRE_ACTING
    notify_only: ClassVar[bool] = False

    agent: ReActAgent
    tool_use: ToolUseBlock


@dataclass
class PostActingEvent(_Stoppable, _EventBase):
    """Fired after each completed tool call, in request order.

    Hooks may replace ``result`` (keeping its id), or call ``stop_agent()``
    to return with ``ACTING_PAUSED`` leaving later calls pending.
    """

    event_type: ClassVar[HookEventType] = HookEventType.POST_ACTING
    notify_only: ClassVar[bool] = False

    agent: ReActAgent
    tool_use: ToolUseBlock
    result: ToolResultBlock
    _stopped: bool = field(default=False, init=False, repr=False)


HookEvent = (
    PreCallEvent
    | PostCallEvent
    | PreReasoningEvent
    | PostReasoningEvent
    | ReasoningChunkEvent
    | PreActingEvent
    | PostActingEvent
    | ActingChunkEvent
    | ErrorEvent
)
