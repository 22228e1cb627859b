"""Session persistence: message serialization and SQLite state storage."""

from reactloop.session.persistence import (
    SESSION_SCHEMA_VERSION,
    SessionSummary,
    deserialize_block,
    deserialize_message,
    serialize_block,
    serialize_message,
)
from reactloop.session.storage import SaveStats, SqliteSession, StateModule

__all__ = [
    "SESSION_SCHEMA_VERSION",
    "SaveStats",
    "SessionSummary",
    "SqliteSession",
    "StateModule",
    "deserialize_block",
    "deserialize_message",
    "serialize_block",
    "serialize_message",
]
