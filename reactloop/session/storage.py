"""SQLite storage for agent session state.

State modules are any objects with ``state_dict()`` / ``load_state_dict()``
(agents, memories, custom components). A module's state is stored as a JSON
skeleton plus its list values, which are stored item by item. Lists only
ever grow at the end during normal agent use, so saving compares stored item
hashes with the new list and rewrites only the changed suffix.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from time import time
from typing import Any, Protocol

from reactloop.core.errors import LoadError
from reactloop.core.validation import validate_session_id
from reactloop.session.persistence import SESSION_SCHEMA_VERSION, SessionSummary

logger = logging.getLogger(__name__)

# Marker replacing a list value in the stored skeleton
_LIST_MARKER = "$list"

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS sessions (
    session_id TEXT PRIMARY KEY,
    created_at REAL NOT NULL,
    modified_at REAL NOT NULL
);

-- One row per state module; list values are replaced by markers
CREATE TABLE IF NOT EXISTS modules (
    session_id TEXT NOT NULL,
    module TEXT NOT NULL,
    skeleton TEXT NOT NULL,
    PRIMARY KEY (session_id, module),
    FOREIGN KEY (session_id) REFERENCES sessions(session_id) ON DELETE CASCADE
);

-- List items, addressed by module, dotted key path and position
CREATE TABLE IF NOT EXISTS list_items (
    session_id TEXT NOT NULL,
    module TEXT NOT NULL,
    path TEXT NOT NULL,
    idx INTEGER NOT NULL,
    item_hash TEXT NOT NULL,
    item TEXT NOT NULL,
    PRIMARY KEY (session_id, module, path, idx),
    FOREIGN KEY (session_id) REFERENCES sessions(session_id) ON DELETE CASCADE
);
"""


class StateModule(Protocol):
    """Anything whose state can be saved in a session."""

    def state_dict(self) -> dict[str, Any]: ...

    def load_state_dict(self, state: dict[str, Any]) -> None: ...


@dataclass
class SaveStats:
    """What a save wrote, per module.

    Attributes:
        written: Number of list items inserted.
        deleted: Number of list items removed.
    """

    written: int = 0
    deleted: int = 0


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _hash(serialized: str) -> str:
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def split_lists(state: Any, path: str = "") -> tuple[Any, dict[str, list[Any]]]:
    """Replace list values reachable through dict keys with markers.

    Returns:
        (skeleton, {dotted_path: list})
    """
    if isinstance(state, list):
        return {_LIST_MARKER: path}, {path: state}
    if not isinstance(state, dict):
        return state, {}

    skeleton: dict[str, Any] = {}
    lists: dict[str, list[Any]] = {}
    for key, value in state.items():
        if not isinstance(key, str) or "." in key:
            raise ValueError(f"State keys must be strings without dots, got {key!r}")
        child_path = f"{path}.{key}" if path else key
        skeleton[key], child_lists = split_lists(value, child_path)
        lists.update(child_lists)
    return skeleton, lists


def join_lists(skeleton: Any, lists: dict[str, list[Any]]) -> Any:
    """Inverse of ``split_lists``."""
    if isinstance(skeleton, dict):
        if set(skeleton) == {_LIST_MARKER}:
            return lists.get(skeleton[_LIST_MARKER], [])
        return {k: join_lists(v, lists) for k, v in skeleton.items()}
    return skeleton


class SqliteSession:
    """SQLite-backed store of session state.

    Example:
        session = SqliteSession(Path("~/.reactloop/sessions/sessions.db").expanduser())
        session.save_session_state("demo", agent=agent)
        ...
        session.load_session_state("demo", agent=agent)
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize storage with database path.

        Creates the database and schema if they don't exist.
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._ensure_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        return self._conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
        )
        if cursor.fetchone() is None:
            conn.executescript(SCHEMA)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SESSION_SCHEMA_VERSION,),
            )
            conn.commit()
            return

        row = conn.execute("SELECT version FROM schema_version").fetchone()
        if row and row[0] > SESSION_SCHEMA_VERSION:
            raise LoadError(
                f"Session database {self.db_path} has schema version {row[0]}, "
                f"newer than supported version {SESSION_SCHEMA_VERSION}"
            )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> SqliteSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # === Session State ===

    def save_session_state(
        self,
        session_id: str,
        **modules: StateModule,
    ) -> dict[str, SaveStats]:
        """Save the state of each named module under ``session_id``.

        List values are written incrementally: items identical to the stored
        prefix are kept, the first differing position and everything after it
        are replaced. The whole save is one transaction.

        Returns:
            Per-module statistics of list items written and deleted.
        """
        validate_session_id(session_id)
        conn = self._get_conn()
        now = time()
        stats: dict[str, SaveStats] = {}

        with conn:
            conn.execute(
                """
                INSERT INTO sessions (session_id, created_at, modified_at) VALUES (?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET modified_at = excluded.modified_at
                """,
                (session_id, now, now),
            )
            for name, module in modules.items():
                stats[name] = self._save_module(conn, session_id, name, module.state_dict())

        for name, s in stats.items():
            logger.debug(
                "Saved session %s module %s: %d item(s) written, %d deleted",
                session_id, name, s.written, s.deleted,
            )
        return stats

    def _save_module(
        self,
        conn: sqlite3.Connection,
        session_id: str,
        module: str,
        state: dict[str, Any],
    ) -> SaveStats:
        skeleton, lists = split_lists(state)
        stats = SaveStats()

        conn.execute(
            """
            INSERT INTO modules (session_id, module, skeleton) VALUES (?, ?, ?)
            ON CONFLICT(session_id, module) DO UPDATE SET skeleton = excluded.skeleton
            """,
            (session_id, module, _dumps(skeleton)),
        )

        # Drop lists that no longer exist in the state
        stored_paths = {
            row["path"]
            for row in conn.execute(
                "SELECT DISTINCT path FROM list_items WHERE session_id = ? AND module = ?",
                (session_id, module),
            )
        }
        for path in stored_paths - set(lists):
            cursor = conn.execute(
                "DELETE FROM list_items WHERE session_id = ? AND module = ? AND path = ?",
                (session_id, module, path),
            )
            stats.deleted += cursor.rowcount

        for path, items in lists.items():
            serialized = [_dumps(item) for item in items]
            hashes = [_hash(s) for s in serialized]
            stored = [
                row["item_hash"]
                for row in conn.execute(
                    """
                    SELECT item_hash FROM list_items
                    WHERE session_id = ? AND module = ? AND path = ?
                    ORDER BY idx
                    """,
                    (session_id, module, path),
                )
            ]

            keep = 0
            for old, new in zip(stored, hashes):
                if old != new:
                    break
                keep += 1

            if keep < len(stored):
                cursor = conn.execute(
                    """
                    DELETE FROM list_items
                    WHERE session_id = ? AND module = ? AND path = ? AND idx >= ?
                    """,
                    (session_id, module, path, keep),
                )
                stats.deleted += cursor.rowcount

            conn.executemany(
                """
                INSERT INTO list_items (session_id, module, path, idx, item_hash, item)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (session_id, module, path, i, hashes[i], serialized[i])
                    for i in range(keep, len(items))
                ],
            )
            stats.written += len(items) - keep

        return stats

    def load_session_state(
        self,
        session_id: str,
        **modules: StateModule,
    ) -> bool:
        """Load stored state into each named module.

        Modules with no stored state are left untouched.

        Returns:
            False if the session does not exist, True otherwise.

        Raises:
            LoadError: If stored data cannot be decoded or a module rejects it.
        """
        validate_session_id(session_id)
        conn = self._get_conn()
        if not self.session_exists(session_id):
            logger.debug("No stored session: %s", session_id)
            return False

        for name, module in modules.items():
            state = self.get_module_state(session_id, name)
            if state is None:
                logger.debug("Session %s has no state for module %s", session_id, name)
                continue
            module.load_state_dict(state)

        conn.commit()
        return True

    def get_module_state(self, session_id: str, module: str) -> dict[str, Any] | None:
        """Reassemble the stored state dict of one module, or None if absent."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT skeleton FROM modules WHERE session_id = ? AND module = ?",
            (session_id, module),
        ).fetchone()
        if row is None:
            return None

        lists: dict[str, list[Any]] = {}
        try:
            skeleton = json.loads(row["skeleton"])
            for item_row in conn.execute(
                """
                SELECT path, item FROM list_items
                WHERE session_id = ? AND module = ?
                ORDER BY path, idx
                """,
                (session_id, module),
            ):
                lists.setdefault(item_row["path"], []).append(json.loads(item_row["item"]))
        except json.JSONDecodeError as e:
            raise LoadError(f"Corrupt state for session {session_id} module {module}: {e}") from e

        return join_lists(skeleton, lists)

    # === Session Listing ===

    def session_exists(self, session_id: str) -> bool:
        row = self._get_conn().execute(
            "SELECT 1 FROM sessions WHERE session_id = ?", (session_id,)
        ).fetchone()
        return row is not None

    def list_sessions(self) -> list[SessionSummary]:
        """List stored sessions, most recently modified first."""
        conn = self._get_conn()
        summaries = []
        for row in conn.execute("SELECT * FROM sessions ORDER BY modified_at DESC"):
            module_rows = conn.execute(
                "SELECT module FROM modules WHERE session_id = ? ORDER BY module",
                (row["session_id"],),
            )
            summaries.append(
                SessionSummary(
                    session_id=row["session_id"],
                    modified_at=datetime.fromtimestamp(row["modified_at"]),
                    modules=[r["module"] for r in module_rows],
                )
            )
        return summaries

    def delete_session(self, session_id: str) -> bool:
        """Delete a session and all of its state. Returns False if it did not exist."""
        conn = self._get_conn()
        with conn:
            cursor = conn.execute("DELETE FROM sessions WHERE session_id = ?", (session_id,))
        return cursor.rowcount > 0
