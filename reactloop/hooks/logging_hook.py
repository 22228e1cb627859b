"""Hook that logs every loop phase."""

from __future__ import annotations

import logging
from typing import assert_never

from reactloop.hooks.events import (
    ActingChunkEvent,
    ErrorEvent,
    HookEvent,
    PostActingEvent,
    PostCallEvent,
    PostReasoningEvent,
    PreActingEvent,
    PreCallEvent,
    PreReasoningEvent,
    ReasoningChunkEvent,
)
from reactloop.hooks.pipeline import Hook

logger = logging.getLogger(__name__)


def describe_event(event: HookEvent) -> str:
    """One-line human-readable summary of a hook event."""
    match event:
        case PreCallEvent():
            return f"call started with {len(event.messages)} input message(s)"
        case PostCallEvent():
            reason = event.reason.value if event.reason else "none"
            return f"call finished: {reason}"
        case PreReasoningEvent():
            return f"reasoning over {len(event.messages)} message(s), {len(event.tools)} tool(s)"
        case PostReasoningEvent():
            return f"reasoning produced {len(event.message.content)} block(s)"
        case ReasoningChunkEvent():
            return f"reasoning chunk ({len(event.chunk.text)} chars)"
        case PreActingEvent():
            return f"acting: {event.tool_use.name} [{event.tool_use.id}]"
        case PostActingEvent():
            status = "error" if event.result.is_error else "ok"
            return f"acted: {event.tool_use.name} [{event.tool_use.id}] {status}"
        case ActingChunkEvent():
            return f"acting chunk from {event.tool_use.name} [{event.tool_use.id}]"
        case ErrorEvent():
            return f"error: {type(event.error).__name__}: {event.error}"
        case _:
            assert_never(event)


class LoggingHook(Hook):
    """Log each hook phase of the agent it is attached to.

    Runs first by default so it sees events before other hooks change them.
    Chunk events are logged only when ``include_chunks`` is set.
    """

    priority = 0

    def __init__(self, level: int = logging.DEBUG, include_chunks: bool = False) -> None:
        self.level = level
        self.include_chunks = include_chunks

    async def on_event(self, event: HookEvent) -> None:
        if isinstance(event, (ReasoningChunkEvent, ActingChunkEvent)) and not self.include_chunks:
            return None
        if isinstance(event, ErrorEvent):
            logger.log(max(self.level, logging.WARNING), "[%s] %s",
                       event.agent.name, describe_event(event))
            return None
        logger.log(self.level, "[%s] %s", event.agent.name, describe_event(event))
        return None
