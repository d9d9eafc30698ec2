"""
Local SQLite store backing the task sync client.

This module owns the schema for the three tables the sync engine relies on:
- tasks: the locally edited entities
- sync_queue: pending mutations, drained by the sync coordinator
- sync_dead_letter_queue: mutations that exhausted their retries
"""

import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterator, Optional


class SyncDatabase:
    """
    Thread-safe access to the local SQLite database.

    Every statement runs inside ``transaction()``, which holds the lock,
    commits on success and rolls back on error. Multi-statement transitions
    (such as promoting a mutation to the dead-letter queue) therefore happen
    atomically with respect to concurrent enqueues.
    """

    DEFAULT_DB_PATH = "tasksync.db"

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the database.

        Args:
            db_path: Path to the SQLite database file. If None, uses default.
                     Use ":memory:" for in-memory database (useful for testing).
        """
        self.db_path = db_path or self.DEFAULT_DB_PATH
        # Re-entrant: close() and nested transaction() calls on one thread must not deadlock
        self._lock = threading.RLock()
        self._is_memory = self.db_path == ":memory:"
        self._shared_conn: Optional[sqlite3.Connection] = None
        self._init_database()

    def _init_database(self) -> None:
        """Initialize the SQLite database schema."""
        with self.transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT,
                    completed INTEGER DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    is_deleted INTEGER DEFAULT 0,
                    sync_status TEXT DEFAULT 'pending',
                    server_id TEXT,
                    last_synced_at TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS sync_queue (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    retry_count INTEGER DEFAULT 0,
                    error_message TEXT,
                    sync_status TEXT DEFAULT 'pending'
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_sync_queue_order
                ON sync_queue(task_id, created_at, id)
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS sync_dead_letter_queue (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    original_sync_queue_id INTEGER NOT NULL,
                    task_id TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    retry_count INTEGER NOT NULL,
                    error_message TEXT,
                    failed_at TEXT NOT NULL
                )
            """)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        # For in-memory databases, reuse the same connection
        if self._is_memory:
            if self._shared_conn is None:
                self._shared_conn = sqlite3.connect(":memory:", check_same_thread=False)
                self._shared_conn.row_factory = sqlite3.Row
            return self._shared_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block of statements as one transaction.

        Yields:
            An open connection. Changes are committed when the block exits
            normally and rolled back if it raises; the exception propagates.
        """
        with self._lock:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                if not self._is_memory:
                    conn.close()

    def close(self) -> None:
        """Close the database and any open connections."""
        with self._lock:
            if self._shared_conn is not None:
                self._shared_conn.close()
                self._shared_conn = None
