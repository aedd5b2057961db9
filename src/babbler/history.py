"""Append-only log of prior entry states."""

from __future__ import annotations

import sqlite3
from typing import Optional

from .database import ENTRY_COLUMNS, Database
from .models import HistoryRecord

_COLUMN_LIST = ", ".join(ENTRY_COLUMNS)
_PLACEHOLDERS = ", ".join("?" for _ in ENTRY_COLUMNS)


class HistoryLog:
    """Snapshots written by the entry store; read-only to everyone else."""

    def __init__(self, database: Database):
        self.database = database

    def append(self, conn: sqlite3.Connection, row: sqlite3.Row) -> int:
        """Record a babbler_entries row as it was before a mutation.

        Must be called with the connection of the caller's open transaction so
        the snapshot commits or rolls back together with the mutation.

        Returns:
            The new history_id
        """
        cursor = conn.execute(
            f"INSERT INTO babbler_history ({_COLUMN_LIST}) VALUES ({_PLACEHOLDERS})",
            tuple(row[column] for column in ENTRY_COLUMNS),
        )
        return cursor.lastrowid

    def for_entry(self, entry_id: int) -> list[HistoryRecord]:
        """All snapshots of an entry, oldest first."""
        cursor = self.database.connection.execute(
            "SELECT * FROM babbler_history WHERE entry_id = ? ORDER BY history_id ASC",
            (entry_id,),
        )
        return [HistoryRecord.from_row(row) for row in cursor.fetchall()]

    def get(self, history_id: int) -> Optional[HistoryRecord]:
        cursor = self.database.connection.execute(
            "SELECT * FROM babbler_history WHERE history_id = ?", (history_id,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return HistoryRecord.from_row(row)

    def count(self, entry_id: Optional[int] = None) -> int:
        """Number of snapshots, for one entry or overall."""
        conn = self.database.connection
        if entry_id is None:
            cursor = conn.execute("SELECT COUNT(*) FROM babbler_history")
        else:
            cursor = conn.execute(
                "SELECT COUNT(*) FROM babbler_history WHERE entry_id = ?", (entry_id,)
            )
        return cursor.fetchone()[0]
