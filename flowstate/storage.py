from __future__ import annotations

import copy
import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Protocol


class StorageError(Exception):
    """A key-value backend could not read or write a document."""


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryKeyValueStore:
    """Process-local store; documents are deep-copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Any | None:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        return list(self._data)


class SQLiteKeyValueStore:
    """JSON documents keyed by name in a single SQLite table."""

    def __init__(self, db_file: Path):
        self._db_file = Path(db_file)
        self._db_file.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_file, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    @contextmanager
    def _connection(self):
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open {self._db_file}: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._lock, self._connection() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )
            conn.commit()

    def get(self, key: str) -> Any | None:
        with self._lock, self._connection() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return None
        try:
            return json.loads(str(row["value"]))
        except ValueError as exc:
            raise StorageError(f"Stored value for {key!r} is not valid JSON: {exc}") from exc

    def set(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Value for {key!r} is not JSON serializable: {exc}") from exc
        with self._lock, self._connection() as conn:
            conn.execute(
                """
                INSERT INTO kv_store(key, value)
                VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, encoded),
            )
            conn.commit()

    def delete(self, key: str) -> None:
        with self._lock, self._connection() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()

    def clear(self) -> None:
        with self._lock, self._connection() as conn:
            conn.execute("DELETE FROM kv_store")
            conn.commit()

    def keys(self) -> list[str]:
        with self._lock, self._connection() as conn:
            rows = conn.execute("SELECT key FROM kv_store ORDER BY key ASC").fetchall()
        return [str(row["key"]) for row in rows]
