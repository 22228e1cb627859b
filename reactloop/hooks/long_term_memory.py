"""Hook connecting an agent to a long-term memory store."""

from __future__ import annotations

import logging

from reactloop.core.types import GenerateReason, Message, Role
from reactloop.hooks.events import (
    HookEvent,
    PostCallEvent,
    PreCallEvent,
    PreReasoningEvent,
)
from reactloop.hooks.pipeline import Hook
from reactloop.memory.long_term import LongTermMemory

logger = logging.getLogger(__name__)


class LongTermMemoryHook(Hook):
    """Inject recalled context before reasoning and record finished exchanges.

    On ``PRE_CALL`` the store is queried with the call's last input message.
    Retrieved snippets are added as a system message right after the system
    prompt on every ``PRE_REASONING`` of that call; memory itself is not
    changed. On ``POST_CALL`` with ``MODEL_STOP`` the input and final reply
    are recorded.
    """

    priority = 50

    def __init__(self, store: LongTermMemory, limit: int = 5) -> None:
        self.store = store
        self.limit = limit
        self._inputs: list[Message] = []
        self._recalled: list[str] = []

    async def on_event(self, event: HookEvent) -> HookEvent | None:
        if isinstance(event, PreCallEvent):
            self._inputs = list(event.messages)
            self._recalled = []
            if self._inputs:
                self._recalled = await self.store.retrieve(self._inputs[-1], self.limit)
                logger.debug("Recalled %d long-term memories", len(self._recalled))
            return None

        if isinstance(event, PreReasoningEvent) and self._recalled:
            recall = Message.text(
                "long_term_memory",
                Role.SYSTEM,
                "Relevant memories:\n" + "\n".join(f"- {s}" for s in self._recalled),
            )
            insert_at = 1 if event.messages and event.messages[0].role == Role.SYSTEM else 0
            event.messages.insert(insert_at, recall)
            return event

        if isinstance(event, PostCallEvent):
            if event.reason == GenerateReason.MODEL_STOP:
                await self.store.record([*self._inputs, event.message])
            self._inputs = []
            self._recalled = []
        return None
