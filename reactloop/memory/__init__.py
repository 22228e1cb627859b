"""Agent memory: short-term message log and long-term recall."""

from reactloop.memory.base import Memory
from reactloop.memory.in_memory import InMemoryMemory
from reactloop.memory.long_term import KeywordLongTermMemory, LongTermMemory

__all__ = [
    "InMemoryMemory",
    "KeywordLongTermMemory",
    "LongTermMemory",
    "Memory",
]
