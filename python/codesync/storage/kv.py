"""
Persisted key-value store collaborators.

MetadataStore only needs a namespaced key -> JSON-value store. Two backends:
- MemoryKeyValueStore: dict-backed, for tests and ephemeral sessions
- SqliteKeyValueStore: one SQLite table, values stored as JSON text

Both expose coroutine methods. SQLite calls run in a worker thread so the
event loop never blocks on disk I/O.
"""

import asyncio
import copy
import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Protocol

from codesync.errors import StorageError


class KeyValueStore(Protocol):
    """Interface of the persisted store collaborator."""

    async def get(self, key: str, default: Any = None) -> Any:
        """Return the value for key, or default when missing."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value. Setting None deletes the key."""
        ...

    async def delete(self, key: str) -> None:
        """Remove key (no-op when missing)."""
        ...

    async def keys(self) -> list[str]:
        """Return all stored keys."""
        ...


class MemoryKeyValueStore:
    """In-memory store. Values are deep-copied in and out like a real backend."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    async def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        if value is None:
            self._data.pop(key, None)
            return
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._data)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class SqliteKeyValueStore:
    """
    SQLite-backed store.

    Features:
    - WAL mode for file databases (readers don't block the writer)
    - One connection guarded by a lock; calls are dispatched to a thread
    """

    def __init__(self, db_path: str = ".codesync/state.db"):
        """
        Args:
            db_path: Path to SQLite database (use ":memory:" for testing)
        """
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.db_path = db_path
        # check_same_thread=False: calls run in asyncio.to_thread workers
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self._lock = threading.Lock()

        try:
            if db_path != ":memory:":
                self.conn.execute("PRAGMA journal_mode = WAL")
                self.conn.execute("PRAGMA synchronous = NORMAL")
            self.conn.execute(_SCHEMA)
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to initialize key-value store at {db_path}: {e}") from e

    async def get(self, key: str, default: Any = None) -> Any:
        row = await asyncio.to_thread(self._fetch, key)
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt value for key {key}: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        if value is None:
            await self.delete(key)
            return
        payload = json.dumps(value)
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO kv_store (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, payload),
        )

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._execute, "DELETE FROM kv_store WHERE key = ?", (key,))

    async def keys(self) -> list[str]:
        rows = await asyncio.to_thread(self._fetch_all, "SELECT key FROM kv_store ORDER BY key")
        return [row[0] for row in rows]

    def _fetch(self, key: str):
        with self._lock:
            try:
                return self.conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read key {key}: {e}") from e

    def _fetch_all(self, sql: str):
        with self._lock:
            try:
                return self.conn.execute(sql).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to list keys: {e}") from e

    def _execute(self, sql: str, params: tuple) -> None:
        with self._lock:
            try:
                self.conn.execute(sql, params)
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StorageError(f"Failed to write key-value store: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self.conn.close()
