"""Long-term memory collaborator interface and a simple in-process store.

Long-term memory lives outside the agent's message log. The
``LongTermMemoryHook`` (``reactloop.hooks.long_term_memory``) consults it
before reasoning and feeds it the finished exchange after each call.
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

from reactloop.core.types import Message

_WORD_PATTERN = re.compile(r"\w+")


@runtime_checkable
class LongTermMemory(Protocol):
    """Protocol for external recall/record stores."""

    async def record(self, messages: list[Message]) -> None:
        """Store the given messages for later recall."""
        ...

    async def retrieve(self, query: Message, limit: int = 5) -> list[str]:
        """Return up to ``limit`` remembered snippets relevant to ``query``."""
        ...


class KeywordLongTermMemory:
    """Keyword-overlap long-term memory kept in process.

    Records the text of each message and ranks stored snippets by the number
    of words they share with the query. Useful for tests and demos; real
    deployments plug in a vector store behind the same protocol.
    """

    def __init__(self) -> None:
        self._snippets: list[str] = []

    @property
    def snippets(self) -> list[str]:
        return list(self._snippets)

    async def record(self, messages: list[Message]) -> None:
        for msg in messages:
            text = msg.get_text_content().strip()
            if text:
                self._snippets.append(f"{msg.name}: {text}")

    async def retrieve(self, query: Message, limit: int = 5) -> list[str]:
        words = _words(query.get_text_content())
        if not words:
            return []
        scored = [
            (len(words & _words(snippet)), -i, snippet)
            for i, snippet in enumerate(self._snippets)
        ]
        ranked = sorted((s for s in scored if s[0] > 0), reverse=True)
        return [snippet for _, _, snippet in ranked[:limit]]


def _words(text: str) -> set[str]:
    return {w.lower() for w in _WORD_PATTERN.findall(text)}
