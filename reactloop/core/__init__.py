"""Core types and interfaces for reactloop."""

from reactloop.core.cancel import CancellationToken
from reactloop.core.errors import (
    AgentBusyError,
    ConfigError,
    HookError,
    LoadError,
    ProviderError,
    ReactLoopError,
    ResumeError,
    ToolExecutionError,
    ToolSchemaError,
    sanitize_error_for_agent,
)
from reactloop.core.interfaces import ChatModel, RawLogCallback
from reactloop.core.types import (
    AudioBlock,
    Base64Source,
    ChatUsage,
    ContentBlock,
    ContentDelta,
    GenerateReason,
    ImageBlock,
    Message,
    ReasoningDelta,
    Role,
    StreamComplete,
    StreamEvent,
    TextBlock,
    ThinkingBlock,
    ToolCallStarted,
    ToolResultBlock,
    ToolUseBlock,
    URLSource,
    VideoBlock,
)

__all__ = [
    "AgentBusyError",
    "AudioBlock",
    "Base64Source",
    "CancellationToken",
    "ChatModel",
    "ChatUsage",
    "ConfigError",
    "ContentBlock",
    "ContentDelta",
    "GenerateReason",
    "HookError",
    "ImageBlock",
    "LoadError",
    "Message",
    "ProviderError",
    "RawLogCallback",
    "ReactLoopError",
    "ReasoningDelta",
    "ResumeError",
    "Role",
    "StreamComplete",
    "StreamEvent",
    "TextBlock",
    "ThinkingBlock",
    "ToolCallStarted",
    "ToolExecutionError",
    "ToolResultBlock",
    "ToolSchemaError",
    "ToolUseBlock",
    "URLSource",
    "VideoBlock",
    "sanitize_error_for_agent",
]
