"""
Key-value stores backing the content store.

The key-value store is the source of truth for every content item. Values
are opaque text here; decoding into content items is the content store's job.
"""

import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class SqliteKVStore:
    """
    SQLite-backed text key-value store.

    One table, one row per key. Statements are serialized with a lock so the
    connection can be shared across threads.
    """

    def __init__(self, store_path: Path):
        """
        Args:
            store_path: Path to SQLite database file
        """
        self._db_path = store_path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._conn.commit()

    def _now(self) -> str:
        """Current timestamp in ISO format."""
        return datetime.now(timezone.utc).isoformat()

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def put(self, key: str, value: str) -> None:
        """
        Insert or update an entry.

        Preserves created_at on update. Updates updated_at always.
        """
        now = self._now()
        with self._lock:
            self._conn.execute("""
                INSERT INTO entries (key, value, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """, (key, value, now, now))
            self._conn.commit()

    def delete(self, key: str) -> bool:
        """
        Delete an entry.

        Returns:
            True if the entry existed and was deleted
        """
        with self._lock:
            cursor = self._conn.execute("DELETE FROM entries WHERE key = ?", (key,))
            self._conn.commit()
        return cursor.rowcount > 0

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        """Get the value for a key, or None if absent."""
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM entries WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row is not None else None

    def list_keys(self) -> list[str]:
        """List all keys in insertion order."""
        with self._lock:
            cursor = self._conn.execute("SELECT key FROM entries ORDER BY rowid")
            return [row["key"] for row in cursor]

    def count(self) -> int:
        """Count entries."""
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM entries").fetchone()[0]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        self.close()


class MemoryKVStore:
    """Process-local key-value store. Nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def list_keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def count(self) -> int:
        return len(self._data)

    def close(self) -> None:
        pass
