"""Unit tests for SqliteSession and its list splitting."""

import sqlite3
from pathlib import Path
from typing import Any

import pytest

from reactloop.core.errors import LoadError
from reactloop.core.types import Message, Role
from reactloop.core.validation import ValidationError
from reactloop.memory import InMemoryMemory
from reactloop.session import SESSION_SCHEMA_VERSION, SqliteSession
from reactloop.session.storage import join_lists, split_lists


class Box:
    """Minimal state module holding an arbitrary dict."""

    def __init__(self, state: dict[str, Any] | None = None) -> None:
        self.state = state or {}

    def state_dict(self) -> dict[str, Any]:
        return self.state

    def load_state_dict(self, state: dict[str, Any]) -> None:
        self.state = state


@pytest.fixture
def session(tmp_path: Path):
    store = SqliteSession(tmp_path / "sessions.db")
    yield store
    store.close()


class TestSplitLists:
    """Tests for split_lists() and join_lists()."""

    def test_nested_lists_replaced_by_markers(self):
        state = {"name": "a", "memory": {"content": [1, 2]}, "tags": ["x"]}

        skeleton, lists = split_lists(state)

        assert skeleton == {
            "name": "a",
            "memory": {"content": {"$list": "memory.content"}},
            "tags": {"$list": "tags"},
        }
        assert lists == {"memory.content": [1, 2], "tags": ["x"]}
        assert join_lists(skeleton, lists) == state

    def test_missing_list_joins_empty(self):
        assert join_lists({"items": {"$list": "items"}}, {}) == {"items": []}

    def test_dotted_keys_rejected(self):
        with pytest.raises(ValueError, match="without dots"):
            split_lists({"a.b": 1})


class TestSaveAndLoad:
    """Tests for saving and loading module state."""

    def test_round_trip(self, session: SqliteSession):
        box = Box({"count": 3, "items": [{"k": 1}, {"k": 2}], "nested": {"deep": ["z"]}})
        session.save_session_state("s1", box=box)

        restored = Box()
        assert session.load_session_state("s1", box=restored) is True
        assert restored.state == box.state

    def test_missing_session_returns_false(self, session: SqliteSession):
        box = Box({"untouched": True})
        assert session.load_session_state("nope", box=box) is False
        assert box.state == {"untouched": True}

    def test_module_without_state_untouched(self, session: SqliteSession):
        session.save_session_state("s1", first=Box({"a": 1}))
        other = Box({"keep": True})

        session.load_session_state("s1", first=Box(), other=other)

        assert other.state == {"keep": True}

    def test_memory_round_trip(self, session: SqliteSession):
        memory = InMemoryMemory([Message.text("user", Role.USER, "hello")])
        session.save_session_state("chat", memory=memory)

        restored = InMemoryMemory()
        session.load_session_state("chat", memory=restored)

        assert restored.get_memory() == memory.get_memory()

    def test_invalid_session_id(self, session: SqliteSession):
        with pytest.raises(ValidationError):
            session.save_session_state("../escape", box=Box())

    def test_persists_across_connections(self, tmp_path: Path):
        db = tmp_path / "nested" / "sessions.db"
        with SqliteSession(db) as first:
            first.save_session_state("s", box=Box({"items": [1]}))
        with SqliteSession(db) as second:
            assert second.get_module_state("s", "box") == {"items": [1]}


class TestIncrementalSave:
    """Tests for incremental list writes."""

    def test_appended_items_only(self, session: SqliteSession):
        box = Box({"items": [1, 2]})
        assert session.save_session_state("s", box=box)["box"].written == 2

        box.state = {"items": [1, 2, 3, 4]}
        stats = session.save_session_state("s", box=box)["box"]

        assert (stats.written, stats.deleted) == (2, 0)

    def test_unchanged_writes_nothing(self, session: SqliteSession):
        box = Box({"items": [1, 2]})
        session.save_session_state("s", box=box)
        stats = session.save_session_state("s", box=box)["box"]
        assert (stats.written, stats.deleted) == (0, 0)

    def test_changed_item_rewrites_suffix(self, session: SqliteSession):
        box = Box({"items": ["a", "b", "c", "d"]})
        session.save_session_state("s", box=box)

        box.state = {"items": ["a", "X", "c"]}
        stats = session.save_session_state("s", box=box)["box"]

        assert (stats.written, stats.deleted) == (2, 3)
        assert session.get_module_state("s", "box") == {"items": ["a", "X", "c"]}

    def test_vanished_list_deleted(self, session: SqliteSession):
        box = Box({"items": [1, 2], "other": [3]})
        session.save_session_state("s", box=box)

        box.state = {"items": [1, 2]}
        stats = session.save_session_state("s", box=box)["box"]

        assert stats.deleted == 1
        assert session.get_module_state("s", "box") == {"items": [1, 2]}

    def test_list_replaced_by_scalar(self, session: SqliteSession):
        box = Box({"items": [1]})
        session.save_session_state("s", box=box)

        box.state = {"items": None}
        session.save_session_state("s", box=box)

        assert session.get_module_state("s", "box") == {"items": None}


class TestSessionListing:
    """Tests for list_sessions(), session_exists() and delete_session()."""

    def test_list_sessions(self, session: SqliteSession):
        session.save_session_state("older", a=Box())
        session.save_session_state("newer", a=Box(), b=Box())

        summaries = {s.session_id: s for s in session.list_sessions()}

        assert set(summaries) == {"older", "newer"}
        assert summaries["newer"].modules == ["a", "b"]
        assert summaries["older"].modules == ["a"]

    def test_delete_session_cascades(self, session: SqliteSession):
        session.save_session_state("gone", box=Box({"items": [1, 2]}))

        assert session.delete_session("gone") is True
        assert session.delete_session("gone") is False
        assert not session.session_exists("gone")
        assert session.get_module_state("gone", "box") is None


class TestSchemaVersion:
    """Tests for schema version handling."""

    def test_newer_schema_rejected(self, tmp_path: Path):
        db = tmp_path / "sessions.db"
        SqliteSession(db).close()
        conn = sqlite3.connect(db)
        conn.execute("UPDATE schema_version SET version = ?", (SESSION_SCHEMA_VERSION + 1,))
        conn.commit()
        conn.close()

        with pytest.raises(LoadError, match="newer than supported"):
            SqliteSession(db)
