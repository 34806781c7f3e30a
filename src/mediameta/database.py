"""SQLite connection manager (WAL mode) used by the data access layer."""

import sqlite3
import logging
from pathlib import Path
from typing import Optional
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """
    Manages one SQLite connection with WAL and busy-timeout configured.

    Extraction jobs run on the event loop thread while blocking tool calls
    run in worker threads, so the connection is opened with
    ``check_same_thread=False``.
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to SQLite database file (``:memory:`` is accepted)
        """
        self.db_path = db_path
        self._connection: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """
        Establish the connection (idempotent).

        Raises:
            sqlite3.Error: If connection fails
        """
        if self._connection is not None:
            return self._connection

        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Connecting to database: {{'path': {str(self.db_path)!r}}}")
        self._connection = sqlite3.connect(
            str(self.db_path),
            check_same_thread=False,
            timeout=5.0
        )
        self._connection.row_factory = sqlite3.Row
        self._apply_pragmas()
        return self._connection

    def _apply_pragmas(self):
        cursor = self._connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @contextmanager
    def transaction(self):
        """
        Context manager for explicit transactions (used by migrations).

        Commits on success, rolls back on exception.
        """
        conn = self.connect()
        cursor = conn.cursor()
        try:
            cursor.execute("BEGIN")
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def execute(self, sql: str, parameters=None) -> sqlite3.Cursor:
        """Execute a single SQL statement and return the cursor."""
        conn = self.connect()
        cursor = conn.cursor()
        if parameters:
            cursor.execute(sql, parameters)
        else:
            cursor.execute(sql)
        return cursor

    def commit(self):
        if self._connection is not None:
            self._connection.commit()

    def rollback(self):
        if self._connection is not None:
            self._connection.rollback()

    def close(self):
        """Close the connection after checkpointing the WAL."""
        if self._connection is not None:
            try:
                cursor = self._connection.cursor()
                cursor.execute("PRAGMA wal_checkpoint(TRUNCATE)")
                cursor.close()
            except sqlite3.Error as e:
                logger.warning(f"Failed to checkpoint WAL: {e}")

            self._connection.close()
            self._connection = None
            logger.info("Database connection closed")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
