"""Key-value storage layer for Bank Vocabulary."""

import logging
import sqlite3
import time
from pathlib import Path
from typing import Dict, List, Optional

from .errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """SQLite-backed text key-value store."""

    def __init__(self, path: str):
        """Initialize database connection.

        Args:
            path: Path to SQLite database file
        """
        self.path = path
        self._ensure_path_exists()
        try:
            self.conn = sqlite3.connect(path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self._setup_database()
        except sqlite3.Error as e:
            raise StorageError(f"Could not open store at {path}: {e}") from e

    def _ensure_path_exists(self) -> None:
        """Ensure the database directory exists."""
        db_path = Path(self.path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

    def _setup_database(self) -> None:
        """Set up database with WAL mode and create tables."""
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.create_tables()

    def create_tables(self) -> None:
        """Create necessary tables if they don't exist."""
        schema = """
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at INTEGER NOT NULL
        );
        """

        self.conn.executescript(schema)
        self.conn.commit()

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def _connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StorageError(f"Store at {self.path} is closed")
        return self.conn

    def get(self, key: str) -> Optional[str]:
        """Return the text stored under key, or None if absent."""
        conn = self._connection()
        try:
            row = conn.execute(
                "SELECT value FROM kv WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Could not read {key}: {e}") from e

        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        """Store text under key, replacing any previous value."""
        conn = self._connection()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, int(time.time()))
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Could not write {key}: {e}") from e

    def delete(self, key: str) -> None:
        """Remove key if present."""
        conn = self._connection()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Could not delete {key}: {e}") from e

    def keys(self, prefix: str = "") -> List[str]:
        """List stored keys starting with prefix."""
        conn = self._connection()
        try:
            rows = conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Could not list keys: {e}") from e

        return [row["key"] for row in rows if row["key"].startswith(prefix)]


class MemoryKeyValueStore:
    """Dict-backed store with the same interface, for tests and throwaway state."""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self.data if k.startswith(prefix))

    def close(self) -> None:
        pass
