"""Core types for reactloop.

This module defines the fundamental data structures used throughout the
framework: messages, content blocks, generate reasons, usage statistics and
the streaming events produced by model adapters. All dataclasses are frozen
for immutability; new messages are appended to memory, never mutated.
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Literal, TypeVar


class Role(Enum):
    """Message role in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class GenerateReason(Enum):
    """Why an agent call returned.

    Exactly one reason accompanies every message returned from
    ``ReActAgent.call()``. Callers branch on it to decide whether to resume
    (suspended/paused), stop, or start a new turn.
    """

    MODEL_STOP = "model_stop"
    TOOL_SUSPENDED = "tool_suspended"
    REASONING_PAUSED = "reasoning_paused"
    ACTING_PAUSED = "acting_paused"
    INTERRUPTED = "interrupted"
    MAX_ITERATIONS = "max_iterations"

    @property
    def resumable(self) -> bool:
        """True if a zero-argument ``call()`` continues the interrupted work."""
        return self in (
            GenerateReason.TOOL_SUSPENDED,
            GenerateReason.REASONING_PAUSED,
            GenerateReason.ACTING_PAUSED,
        )


# --- Media sources ---


@dataclass(frozen=True)
class Base64Source:
    """Inline media encoded as base64.

    Attributes:
        media_type: MIME type, e.g. ``image/png``.
        data: Base64-encoded payload.
    """

    media_type: str
    data: str
    type: Literal["base64"] = "base64"


@dataclass(frozen=True)
class URLSource:
    """Media referenced by URL."""

    url: str
    type: Literal["url"] = "url"


MediaSource = Base64Source | URLSource


# --- Content blocks ---


@dataclass(frozen=True)
class TextBlock:
    """Plain text content."""

    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class ThinkingBlock:
    """Reasoning trace emitted by a thinking-capable model."""

    thinking: str
    type: Literal["thinking"] = "thinking"


@dataclass(frozen=True)
class ImageBlock:
    source: MediaSource
    type: Literal["image"] = "image"


@dataclass(frozen=True)
class AudioBlock:
    source: MediaSource
    type: Literal["audio"] = "audio"


@dataclass(frozen=True)
class VideoBlock:
    source: MediaSource
    type: Literal["video"] = "video"


@dataclass(frozen=True)
class ToolUseBlock:
    """A request from the model to execute a tool.

    Attributes:
        id: Unique identifier for this tool call.
        name: Name of the tool to execute.
        input: Arguments to pass to the tool.
    """

    id: str
    name: str
    input: dict[str, Any]
    type: Literal["tool_use"] = "tool_use"


@dataclass(frozen=True)
class ToolResultBlock:
    """Outcome of a tool call, referencing the ToolUseBlock it answers.

    Attributes:
        id: ID of the ToolUseBlock this result responds to.
        name: Name of the tool.
        output: Output content blocks (text and/or media).
        is_error: True if the tool reported an error.
    """

    id: str
    name: str
    output: tuple["ContentBlock", ...] = ()
    is_error: bool = False
    type: Literal["tool_result"] = "tool_result"

    @property
    def text(self) -> str:
        """Concatenated text of all TextBlocks in the output."""
        return "\n".join(b.text for b in self.output if isinstance(b, TextBlock))


ContentBlock = (
    TextBlock
    | ThinkingBlock
    | ImageBlock
    | AudioBlock
    | VideoBlock
    | ToolUseBlock
    | ToolResultBlock
)

_B = TypeVar("_B")


@dataclass(frozen=True)
class ChatUsage:
    """Token usage reported by a model call."""

    input_tokens: int = 0
    output_tokens: int = 0
    time: float = 0.0


def _new_message_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Message:
    """A message in a conversation.

    Attributes:
        name: Name of the sender (agent or user name).
        role: The role of the message sender.
        content: Ordered content blocks.
        metadata: Free-form metadata (e.g. suspension reasons).
        generate_reason: Why the agent returned this message. Only set on
            messages returned from an agent call.
        usage: Token usage of the model call that produced this message.
        id: Unique message identifier.
        timestamp: Unix timestamp of creation.
    """

    name: str
    role: Role
    content: tuple[ContentBlock, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    generate_reason: GenerateReason | None = None
    usage: ChatUsage | None = None
    id: str = field(default_factory=_new_message_id)
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def text(cls, name: str, role: Role, text: str, **kwargs: Any) -> "Message":
        """Build a message holding a single TextBlock."""
        return cls(name=name, role=role, content=(TextBlock(text),), **kwargs)

    def get_text_content(self) -> str:
        """Return the concatenated text of all TextBlocks."""
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))

    def get_content_blocks(self, block_type: type[_B]) -> list[_B]:
        """Return all content blocks of the given type, in order."""
        return [b for b in self.content if isinstance(b, block_type)]

    def has_content_blocks(self, block_type: type) -> bool:
        return any(isinstance(b, block_type) for b in self.content)

    def with_reason(self, reason: GenerateReason) -> "Message":
        """Return a copy carrying the given generate reason."""
        return replace(self, generate_reason=reason)


# --- Streaming Types ---
# These types are yielded by provider.stream() to communicate content,
# tool calls, and completion status.


@dataclass(frozen=True)
class StreamEvent:
    """Base class for all streaming events."""

    pass


@dataclass(frozen=True)
class ContentDelta(StreamEvent):
    """A chunk of content text from the stream."""

    text: str


@dataclass(frozen=True)
class ReasoningDelta(StreamEvent):
    """A chunk of reasoning/thinking content from the stream."""

    text: str


@dataclass(frozen=True)
class ToolCallStarted(StreamEvent):
    """Notification that a tool call has been detected in the stream.

    Attributes:
        index: The index of this tool call (for multiple calls).
        id: The unique ID of this tool call.
        name: The name of the tool being called.
    """

    index: int
    id: str
    name: str


@dataclass(frozen=True)
class StreamComplete(StreamEvent):
    """Signals the stream has ended.

    Attributes:
        message: The complete assistant Message with all content blocks.
    """

    message: Message
