"""Memory interface: the agent's ordered message log."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from reactloop.core.types import Message


class Memory(ABC):
    """Ordered log of messages consumed and extended by the ReAct loop.

    The loop only appends; callers may delete or clear between calls.
    Implementations must preserve insertion order and support state
    round-tripping through ``state_dict`` / ``load_state_dict``.
    """

    @abstractmethod
    def add(self, messages: Message | Iterable[Message] | None) -> None:
        """Append one message or a sequence of messages. ``None`` is a no-op."""
        ...

    @abstractmethod
    def get_memory(self) -> list[Message]:
        """Return a snapshot of all messages, oldest first."""
        ...

    @abstractmethod
    def delete(self, indices: int | Iterable[int]) -> None:
        """Delete messages by position.

        Raises:
            IndexError: If any index is out of range. Nothing is deleted.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def size(self) -> int:
        ...

    @abstractmethod
    def state_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable snapshot of the memory."""
        ...

    @abstractmethod
    def load_state_dict(self, state: dict[str, Any]) -> None:
        """Replace the memory's contents with a snapshot from ``state_dict``."""
        ...

    def __len__(self) -> int:
        return self.size()
