import contextlib
import sqlite3
import time
from typing import Protocol


class StoreUnavailableError(RuntimeError):
    """The persistence backend could not be read or written."""


class Store(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class SQLiteStore:
    """Durable string-keyed store backed by a single SQLite table.

    One row per key; ``set`` replaces the whole value.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        try:
            # check_same_thread=False: the dashboard reuses one store across Streamlit script threads
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at INTEGER NOT NULL
                )
                """
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot open store at {db_path}: {e}") from e

    def close(self) -> None:
        with contextlib.suppress(Exception):
            self._conn.close()

    def get(self, key: str) -> str | None:
        try:
            cur = self._conn.cursor()
            cur.execute("SELECT value FROM kv WHERE key = ?", (key,))
            row = cur.fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Read of {key!r} failed: {e}") from e
        return str(row[0]) if row else None

    def set(self, key: str, value: str) -> None:
        now = int(time.time())
        try:
            self._conn.execute(
                """
                INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, now),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Write of {key!r} failed: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Remove of {key!r} failed: {e}") from e


class MemoryStore:
    """Non-durable store for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)
