"""Hook pipeline: phase events, ordering and built-in hooks."""

from reactloop.hooks.events import (
    ActingChunkEvent,
    ErrorEvent,
    HookEvent,
    HookEventType,
    PostActingEvent,
    PostCallEvent,
    PostReasoningEvent,
    PreActingEvent,
    PreCallEvent,
    PreReasoningEvent,
    ReasoningChunkEvent,
)
from reactloop.hooks.logging_hook import LoggingHook, describe_event
from reactloop.hooks.long_term_memory import LongTermMemoryHook
from reactloop.hooks.pipeline import Hook, HookPipeline

__all__ = [
    "ActingChunkEvent",
    "ErrorEvent",
    "Hook",
    "HookEvent",
    "HookEventType",
    "HookPipeline",
    "LoggingHook",
    "LongTermMemoryHook",
    "PostActingEvent",
    "PostCallEvent",
    "PostReasoningEvent",
    "PreActingEvent",
    "PreCallEvent",
    "PreReasoningEvent",
    "ReasoningChunkEvent",
    "describe_event",
]
