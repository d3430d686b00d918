"""Key-value persistence behind the local cache."""

import sqlite3
import threading
from pathlib import Path
from typing import Optional, Protocol

from lexsync.client.retry import with_db_retry
from lexsync.core.errors import StorageQuotaExceeded


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class CacheStorage(Protocol):
    """String key-value store with an optional byte quota."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None:
        """Store ``value``; raises ``StorageQuotaExceeded`` when full."""
        ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def size_bytes(self) -> int: ...

    def close(self) -> None: ...


class MemoryStorage:
    """In-process storage, the default for tests and short-lived clients."""

    def __init__(self, max_bytes: Optional[int] = None):
        self.max_bytes = max_bytes
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.max_bytes is not None:
            current = self.size_bytes()
            previous = self._data.get(key)
            if previous is not None:
                current -= _entry_size(key, previous)
            if current + _entry_size(key, value) > self.max_bytes:
                raise StorageQuotaExceeded(
                    f"Writing {key!r} would exceed {self.max_bytes} bytes"
                )
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def size_bytes(self) -> int:
        return sum(_entry_size(k, v) for k, v in self._data.items())

    def close(self) -> None:
        pass


class SqliteStorage:
    """File-backed storage in a single SQLite table.

    Lock errors from concurrent processes are retried with exponential
    backoff.
    """

    def __init__(self, path: str | Path, max_bytes: Optional[int] = None):
        self.path = Path(path)
        self.max_bytes = max_bytes
        if str(path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(path), timeout=5.0, check_same_thread=False)
        self._init_schema()

    @with_db_retry()
    def _init_schema(self) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS cache_entries ("
                "key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )

    @with_db_retry()
    def get(self, key: str) -> Optional[str]:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM cache_entries WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    @with_db_retry()
    def set(self, key: str, value: str) -> None:
        with self._lock, self._conn:
            if self.max_bytes is not None:
                (others,) = self._conn.execute(
                    "SELECT COALESCE(SUM(length(CAST(key AS BLOB)) + "
                    "length(CAST(value AS BLOB))), 0) FROM cache_entries WHERE key != ?",
                    (key,),
                ).fetchone()
                if others + _entry_size(key, value) > self.max_bytes:
                    raise StorageQuotaExceeded(
                        f"Writing {key!r} would exceed {self.max_bytes} bytes"
                    )
            self._conn.execute(
                "INSERT INTO cache_entries (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    @with_db_retry()
    def delete(self, key: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))

    @with_db_retry()
    def keys(self) -> list[str]:
        with self._lock:
            rows = self._conn.execute("SELECT key FROM cache_entries").fetchall()
        return [row[0] for row in rows]

    @with_db_retry()
    def size_bytes(self) -> int:
        with self._lock:
            (total,) = self._conn.execute(
                "SELECT COALESCE(SUM(length(CAST(key AS BLOB)) + "
                "length(CAST(value AS BLOB))), 0) FROM cache_entries"
            ).fetchone()
        return int(total)

    def close(self) -> None:
        with self._lock:
            self._conn.close()
