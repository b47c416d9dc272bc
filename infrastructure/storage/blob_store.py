"""
Blob store - keyed JSON documents persisted in a single SQLite table.
Each save rewrites the whole document for its key.
"""

import json
import os
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, List, Optional

from services.exceptions import PersistenceError
from utils.logging_config import get_logger


class BlobStore:
    """
    Durable key/value storage for whole-collection JSON blobs.
    """

    def __init__(self, db_path: str = "data/labs.db"):
        """
        Initialize blob store

        Args:
            db_path: Path to SQLite database, or ":memory:" for a throwaway store
        """
        self.logger = get_logger(__name__)
        self.db_path = db_path
        self._lock = threading.Lock()
        # An in-memory database only lives as long as its connection
        self._memory_conn: Optional[sqlite3.Connection] = None
        if db_path == ":memory:":
            self._memory_conn = sqlite3.connect(":memory:", check_same_thread=False)

        self._init_database()

    def _init_database(self):
        """Initialize the blobs table"""
        if self._memory_conn is None:
            directory = os.path.dirname(self.db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

        with self._connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS blobs (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

        self.logger.info(f"Blob store initialized at {self.db_path}")

    @contextmanager
    def _connection(self):
        with self._lock:
            if self._memory_conn is not None:
                conn = self._memory_conn
                try:
                    yield conn
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
                return

            conn = sqlite3.connect(self.db_path)
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def get(self, key: str) -> Optional[Any]:
        """
        Read and decode the document stored under `key`

        Returns:
            Decoded JSON value, or None if the key was never written

        Raises:
            PersistenceError: if the database or the stored JSON is unreadable
        """
        try:
            with self._connection() as conn:
                row = conn.execute("SELECT value FROM blobs WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not read '{key}': {e}") from e

        if row is None:
            return None

        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Stored value for '{key}' is not valid JSON: {e}") from e

    def set(self, key: str, value: Any) -> None:
        """
        Overwrite the document stored under `key` in a single write

        Raises:
            PersistenceError: if the value cannot be encoded or written
        """
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Could not encode '{key}': {e}") from e

        try:
            with self._connection() as conn:
                conn.execute("""
                    INSERT INTO blobs (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                   updated_at = excluded.updated_at
                """, (key, payload, datetime.now().isoformat()))
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not write '{key}': {e}") from e

        self.logger.debug(f"Saved blob '{key}'")

    def delete(self, key: str) -> bool:
        """Remove `key`; returns True if something was deleted"""
        try:
            with self._connection() as conn:
                cursor = conn.execute("DELETE FROM blobs WHERE key = ?", (key,))
                deleted = cursor.rowcount > 0
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not delete '{key}': {e}") from e
        return deleted

    def keys(self) -> List[str]:
        """List stored keys"""
        try:
            with self._connection() as conn:
                rows = conn.execute("SELECT key FROM blobs ORDER BY key").fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not list keys: {e}") from e
        return [row[0] for row in rows]

    def close(self):
        """Close the in-memory connection, if any"""
        if self._memory_conn is not None:
            self._memory_conn.close()
            self._memory_conn = None
