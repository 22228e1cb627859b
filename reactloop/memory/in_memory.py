"""In-process list-backed memory."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from reactloop.core.errors import LoadError
from reactloop.core.types import Message
from reactloop.memory.base import Memory
from reactloop.session.persistence import deserialize_message, serialize_message

logger = logging.getLogger(__name__)


class InMemoryMemory(Memory):
    """Memory that keeps messages in a Python list.

    Example:
        memory = InMemoryMemory()
        memory.add(Message.text("user", Role.USER, "Hello!"))
        memory.size()  # 1
    """

    def __init__(self, messages: Iterable[Message] | None = None) -> None:
        self._messages: list[Message] = list(messages or [])

    def add(self, messages: Message | Iterable[Message] | None) -> None:
        if messages is None:
            return
        if isinstance(messages, Message):
            self._messages.append(messages)
            return
        batch = list(messages)
        for msg in batch:
            if not isinstance(msg, Message):
                raise TypeError(f"Memory only stores Message objects, got {type(msg).__name__}")
        self._messages.extend(batch)

    def get_memory(self) -> list[Message]:
        return list(self._messages)

    def delete(self, indices: int | Iterable[int]) -> None:
        targets = {indices} if isinstance(indices, int) else set(indices)
        size = len(self._messages)
        invalid = sorted(i for i in targets if not -size <= i < size)
        if invalid:
            raise IndexError(f"Memory indices out of range (size {size}): {invalid}")
        normalized = {i % size for i in targets}
        self._messages = [m for i, m in enumerate(self._messages) if i not in normalized]
        logger.debug("Deleted %d message(s) from memory", len(normalized))

    def clear(self) -> None:
        self._messages.clear()

    def size(self) -> int:
        return len(self._messages)

    def state_dict(self) -> dict[str, Any]:
        return {"content": [serialize_message(m) for m in self._messages]}

    def load_state_dict(self, state: dict[str, Any]) -> None:
        """Restore messages from ``state_dict`` output.

        Raises:
            LoadError: If the state is malformed.
        """
        content = state.get("content")
        if not isinstance(content, list):
            raise LoadError("Memory state must contain a 'content' list")
        self._messages = [deserialize_message(m) for m in content]
