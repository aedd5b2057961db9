"""SQLite storage for entries, history, and content rules.

Owns the connection, provisions the schema on first open, and provides the
transaction scope every mutation runs in.

Database location: configured by BabblerConfig.database (default babbler.db)
"""

from __future__ import annotations

import logging
import re
import sqlite3
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Generator, Optional

from .locking import file_lock

logger = logging.getLogger(__name__)

ENTRY_COLUMNS = (
    "entry_id",
    "created",
    "edited",
    "published",
    "is_draft",
    "is_hidden",
    "created_by",
    "edited_by",
    "category",
    "sub_category",
    "title",
    "fronted_title",
    "content",
    "dynamic_content",
)


@lru_cache(maxsize=128)
def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def _regexp(pattern: str, value: Optional[str]) -> bool:
    """SQL REGEXP operator: `value REGEXP pattern` calls regexp(pattern, value)."""
    if value is None:
        return False
    return _compile(pattern).search(value) is not None


class Database:
    """SQLite connection holder for a babbler project."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path, lock_timeout: float = 10.0):
        """Open (and if needed provision) the database.

        Args:
            db_path: Path to the SQLite database file
            lock_timeout: Seconds to wait for the provisioning lock
        """
        self.db_path = db_path
        self.lock_timeout = lock_timeout
        self._connection: Optional[sqlite3.Connection] = None
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode: transactions are opened explicitly by transaction()
            self._connection = sqlite3.connect(str(self.db_path), isolation_level=None)
            self._connection.row_factory = sqlite3.Row
            self._connection.create_function("REGEXP", 2, _regexp, deterministic=True)
            self._connection.execute("PRAGMA foreign_keys = ON")
            self._connection.execute("PRAGMA journal_mode = WAL")
        return self._connection

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run the enclosed statements as one unit of work.

        Commits on normal exit, rolls back on any exception and re-raises it.
        """
        conn = self.connection
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

    def _ensure_schema(self) -> None:
        """Create the database schema if it doesn't exist."""
        with file_lock(self.db_path, timeout=self.lock_timeout):
            conn = self.connection

            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
            )
            if cursor.fetchone() is None:
                self._init_schema(conn)
            else:
                cursor = conn.execute("SELECT version FROM schema_version")
                row = cursor.fetchone()
                if row is None or row[0] < self.SCHEMA_VERSION:
                    self._migrate_schema(conn, row[0] if row else 0)

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        """Initialize the database schema."""
        logger.info("Creating babbler schema in %s", self.db_path)
        try:
            conn.executescript("""
                BEGIN;

                -- Schema version tracking
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                );
                INSERT INTO schema_version (version) VALUES (1);

                -- Current state of every entry
                CREATE TABLE IF NOT EXISTS babbler_entries (
                    entry_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    created TEXT NOT NULL,              -- ISO 8601, UTC
                    edited TEXT NOT NULL,               -- ISO 8601, UTC
                    published TEXT,                     -- NULL = unpublished
                    is_draft INTEGER NOT NULL DEFAULT 0,
                    is_hidden INTEGER NOT NULL DEFAULT 0,
                    created_by TEXT NOT NULL,
                    edited_by TEXT NOT NULL,
                    category TEXT NOT NULL,
                    sub_category TEXT NOT NULL,
                    title TEXT NOT NULL,
                    fronted_title TEXT NOT NULL,
                    content TEXT NOT NULL,
                    dynamic_content TEXT,
                    CHECK (edited >= created)
                );

                CREATE INDEX IF NOT EXISTS idx_entries_category ON babbler_entries(category, sub_category);
                CREATE INDEX IF NOT EXISTS idx_entries_fronted_title ON babbler_entries(fronted_title);

                -- Prior states; entry_id is not a foreign key so history outlives deletes
                CREATE TABLE IF NOT EXISTS babbler_history (
                    history_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    entry_id INTEGER NOT NULL,
                    created TEXT NOT NULL,
                    edited TEXT NOT NULL,
                    published TEXT,
                    is_draft INTEGER NOT NULL DEFAULT 0,
                    is_hidden INTEGER NOT NULL DEFAULT 0,
                    created_by TEXT NOT NULL,
                    edited_by TEXT NOT NULL,
                    category TEXT NOT NULL,
                    sub_category TEXT NOT NULL,
                    title TEXT NOT NULL,
                    fronted_title TEXT NOT NULL,
                    content TEXT NOT NULL,
                    dynamic_content TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_history_entry ON babbler_history(entry_id);

                -- History rows are write-once
                CREATE TRIGGER IF NOT EXISTS babbler_history_no_update BEFORE UPDATE ON babbler_history BEGIN
                    SELECT RAISE(ABORT, 'history records are write-once');
                END;

                -- Content rewriting pipeline, applied in ascending order
                CREATE TABLE IF NOT EXISTS babbler_rules (
                    "order" INTEGER PRIMARY KEY,
                    pattern TEXT NOT NULL UNIQUE,
                    replacement TEXT NOT NULL DEFAULT ''
                );

                COMMIT;
            """)
        except sqlite3.Error:
            # A failed statement leaves the script's BEGIN open
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

    def _migrate_schema(self, conn: sqlite3.Connection, from_version: int) -> None:
        """Migrate schema from an older version."""
        # Currently only version 1 exists, so no migrations needed
        if from_version < 1:
            self._init_schema(conn)

    def close(self) -> None:
        """Close the database connection.

        Checkpoints the WAL and switches back to DELETE journal mode first so
        no -wal/-shm files are left behind.
        """
        if self._connection is not None:
            try:
                self._connection.execute("PRAGMA wal_checkpoint(TRUNCATE)")
                self._connection.execute("PRAGMA journal_mode = DELETE")
            except sqlite3.Error:
                logger.debug("WAL checkpoint failed while closing %s", self.db_path)
            self._connection.close()
            self._connection = None
