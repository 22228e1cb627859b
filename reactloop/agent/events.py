"""Events yielded by ``ReActAgent.stream()``."""

from __future__ import annotations

from dataclasses import dataclass

from reactloop.core.types import Message
from reactloop.hooks.events import ActingChunkEvent, ReasoningChunkEvent


@dataclass(frozen=True)
class AgentCompleted:
    """Last event of a stream, carrying the call's return message."""

    message: Message


AgentStreamEvent = ReasoningChunkEvent | ActingChunkEvent | AgentCompleted
