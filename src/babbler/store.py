"""Entry store - CRUD over entries with derived fields and history capture."""

from __future__ import annotations

import logging
import re
import sqlite3
from datetime import datetime, timedelta
from typing import Any, Optional, Union

from .config import BabblerConfig
from .database import ENTRY_COLUMNS, Database
from .errors import StoreError, ValidationError
from .history import HistoryLog
from .models import (
    Entry,
    format_timestamp,
    front_title,
    parse_datetime,
    parse_timestamp,
    utc_now,
)
from .rules import RuleEngine

logger = logging.getLogger(__name__)

# Date-time shape accepted by edit() for the published column
PUBLISHED_PATTERN = re.compile(r"\d{4}-\d\d-\d\d.\d\d(:\d\d(:\d\d)?)?")

_ENTRY_ID_PATTERN = re.compile(r"^\s*\d+\s*$")

# Largest value SQLite can store in an INTEGER column
MAX_ENTRY_ID = 2**63 - 1

DateInput = Union[str, datetime, None]


def _given(value: DateInput) -> bool:
    """True unless a date argument is None or a blank string."""
    if isinstance(value, str):
        return bool(value.strip())
    return value is not None


class EntryStore:
    """Creates, edits, deletes and reads entries.

    Edits and deletes snapshot the previous row into the history log inside
    the same transaction as the mutation.
    """

    def __init__(self, database: Database, rules: RuleEngine, history: HistoryLog, config: BabblerConfig):
        self.database = database
        self.rules = rules
        self.history = history
        self.config = config

    # ========== Validation helpers ==========

    def _validate_id(self, entry_id: Union[int, str]) -> int:
        """Coerce an entry id to a positive int."""
        if isinstance(entry_id, bool):
            raise ValidationError(f"Invalid entry id: {entry_id!r}")
        if isinstance(entry_id, str) and _ENTRY_ID_PATTERN.match(entry_id):
            entry_id = int(entry_id)
        if not isinstance(entry_id, int) or entry_id <= 0:
            raise ValidationError(f"Invalid entry id: {entry_id!r}")
        return entry_id

    def _check_lengths(self, values: dict[str, str]) -> None:
        limits = self.config.field_limits()
        too_long = [
            f"'{name}' ({len(value)} > {limits[name]})"
            for name, value in values.items()
            if name in limits and len(value) > limits[name]
        ]
        if too_long:
            raise ValidationError("Values too long for: " + ", ".join(too_long))

    def _parse_date(self, name: str, value: Union[str, datetime]) -> datetime:
        try:
            return parse_datetime(value)
        except ValueError as e:
            raise ValidationError(f"Invalid date for '{name}': {value!r}") from e

    @staticmethod
    def _next_edited(row: sqlite3.Row) -> datetime:
        """A timestamp strictly after the row's last edit and not before its creation."""
        previous = parse_timestamp(row["edited"])
        created = parse_timestamp(row["created"])
        return max(utc_now(), previous + timedelta(microseconds=1), created)

    # ========== Mutations ==========

    def create(
        self,
        category: str,
        sub_category: str,
        title: str,
        content: str,
        author: str,
        created: DateInput = None,
        published: DateInput = None,
        is_draft: bool = False,
        is_hidden: bool = False,
    ) -> int:
        """Add a new entry.

        Args:
            created: Creation time, datetime or free-form string; defaults to now
            published: Publish time, datetime or free-form string; None = unpublished

        Returns:
            The new entry_id

        Raises:
            ValidationError: If a required field is empty, too long, or a date is unreadable.
            StoreError: If the database rejects the insert.
        """
        fields = {
            "category": category,
            "sub_category": sub_category,
            "title": title,
            "content": content,
            "author": author,
        }
        empty = [name for name, value in fields.items() if not (value or "").strip()]
        if empty:
            raise ValidationError(
                "Empty strings provided for: " + ", ".join(f"'{name}'" for name in empty)
            )

        values = {name: value.strip() for name, value in fields.items()}
        self._check_lengths(values)

        created_at = self._parse_date("created", created) if _given(created) else utc_now()
        published_at = self._parse_date("published", published) if _given(published) else None

        dynamic_content = self.rules.apply(values["content"])

        params = {
            "created": format_timestamp(created_at),
            "edited": format_timestamp(created_at),
            "published": format_timestamp(published_at) if published_at else None,
            "is_draft": int(bool(is_draft)),
            "is_hidden": int(bool(is_hidden)),
            "created_by": values["author"],
            "edited_by": values["author"],
            "category": values["category"],
            "sub_category": values["sub_category"],
            "title": values["title"],
            "fronted_title": front_title(values["title"]),
            "content": values["content"],
            "dynamic_content": dynamic_content,
        }
        columns = ", ".join(params)
        placeholders = ", ".join(f":{name}" for name in params)

        try:
            with self.database.transaction() as conn:
                cursor = conn.execute(
                    f"INSERT INTO babbler_entries ({columns}) VALUES ({placeholders})",
                    params,
                )
                entry_id = cursor.lastrowid
        except sqlite3.Error as e:
            raise StoreError(f"Failed to create entry: {e}") from e

        logger.debug("Created entry %d in %s/%s", entry_id, values["category"], values["sub_category"])
        return entry_id

    def edit(
        self,
        entry_id: Union[int, str],
        editor: str,
        category: str = "",
        sub_category: str = "",
        title: str = "",
        content: str = "",
        published: DateInput = "",
        is_draft: Optional[bool] = None,
        is_hidden: Optional[bool] = None,
    ) -> int:
        """Apply a partial update to an entry.

        Empty strings leave a field unchanged; is_draft/is_hidden are left
        alone when None. published is applied only when it looks like
        YYYY-MM-DD HH[:MM[:SS]]. Every successful edit records editor,
        advances the edited timestamp and snapshots the previous row.

        Returns:
            Number of rows updated (1)

        Raises:
            ValidationError: For a malformed or unknown entry_id, empty editor,
                over-long values, or an impossible published date.
            StoreError: If the update or the history write fails; neither is kept.
        """
        entry_id = self._validate_id(entry_id)
        if entry_id > MAX_ENTRY_ID:
            raise ValidationError(f"No entry with id {entry_id}")

        editor = (editor or "").strip()
        if not editor:
            raise ValidationError("Empty strings provided for: 'editor'")

        changes: dict[str, Any] = {"edited_by": editor}
        for name, value in (
            ("category", category),
            ("sub_category", sub_category),
            ("title", title),
            ("content", content),
        ):
            value = (value or "").strip()
            if value:
                changes[name] = value

        self._check_lengths({
            "author": editor,
            **{k: v for k, v in changes.items() if k in ("category", "sub_category", "title")},
        })

        if isinstance(published, datetime):
            changes["published"] = format_timestamp(self._parse_date("published", published))
        elif published and PUBLISHED_PATTERN.search(published):
            changes["published"] = format_timestamp(self._parse_date("published", published))

        if is_draft is not None:
            changes["is_draft"] = int(bool(is_draft))
        if is_hidden is not None:
            changes["is_hidden"] = int(bool(is_hidden))

        if "title" in changes:
            changes["fronted_title"] = front_title(changes["title"])
        if "content" in changes:
            changes["dynamic_content"] = self.rules.apply(changes["content"])

        try:
            with self.database.transaction() as conn:
                row = conn.execute(
                    "SELECT * FROM babbler_entries WHERE entry_id = ?", (entry_id,)
                ).fetchone()
                if row is None:
                    raise ValidationError(f"No entry with id {entry_id}")

                changes["edited"] = format_timestamp(self._next_edited(row))
                assignments = ", ".join(f"{column} = ?" for column in changes)
                cursor = conn.execute(
                    f"UPDATE babbler_entries SET {assignments} WHERE entry_id = ?",
                    (*changes.values(), entry_id),
                )
                self.history.append(conn, row)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to edit entry {entry_id}: {e}") from e

        logger.debug("Edited entry %d by %s (%s)", entry_id, editor, ", ".join(changes))
        return cursor.rowcount

    def delete(self, entry_id: Union[int, str]) -> bool:
        """Remove an entry, keeping its last state in the history log.

        Returns:
            True if exactly one entry was removed, False if none matched

        Raises:
            ValidationError: If entry_id is not a positive integer.
            StoreError: If the delete or the history write fails; neither is kept.
        """
        entry_id = self._validate_id(entry_id)
        if entry_id > MAX_ENTRY_ID:
            return False

        try:
            with self.database.transaction() as conn:
                row = conn.execute(
                    "SELECT * FROM babbler_entries WHERE entry_id = ?", (entry_id,)
                ).fetchone()
                if row is None:
                    return False

                cursor = conn.execute("DELETE FROM babbler_entries WHERE entry_id = ?", (entry_id,))
                if cursor.rowcount != 1:
                    raise StoreError(f"Delete of entry {entry_id} matched {cursor.rowcount} rows")
                self.history.append(conn, row)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete entry {entry_id}: {e}") from e

        logger.debug("Deleted entry %d", entry_id)
        return True

    def rebuild_dynamic_content(self) -> int:
        """Recompute dynamic_content for every entry after rule changes.

        This is maintenance, not an edit: edited timestamps and history are
        left alone.

        Returns:
            Number of entries whose dynamic_content changed
        """
        updated = 0
        try:
            with self.database.transaction() as conn:
                rows = conn.execute(
                    "SELECT entry_id, content, dynamic_content FROM babbler_entries"
                ).fetchall()
                for row in rows:
                    derived = self.rules.apply(row["content"])
                    if derived != row["dynamic_content"]:
                        conn.execute(
                            "UPDATE babbler_entries SET dynamic_content = ? WHERE entry_id = ?",
                            (derived, row["entry_id"]),
                        )
                        updated += 1
        except sqlite3.Error as e:
            raise StoreError(f"Failed to rebuild dynamic content: {e}") from e

        logger.info("Rebuilt dynamic content for %d entries", updated)
        return updated

    # ========== Reads ==========

    @staticmethod
    def _order_clause(order_by: str, sort: str) -> str:
        # Validate order_by to prevent injection
        column = order_by if order_by in ENTRY_COLUMNS else "created"
        direction = sort.upper() if sort and sort.upper() in ("ASC", "DESC") else "ASC"
        return f"ORDER BY {column} {direction}, entry_id ASC"

    @staticmethod
    def _limit_clause(limit: int, start: int, params: list[Any]) -> str:
        if limit == 0:
            return ""
        params.extend([limit, max(start, 0)])
        return "LIMIT ? OFFSET ?"

    def fetch_entry(self, entry_id: Union[int, str]) -> Optional[Entry]:
        """Get a single entry by id, or None if it doesn't exist."""
        entry_id = self._validate_id(entry_id)
        if entry_id > MAX_ENTRY_ID:
            return None
        row = self.database.connection.execute(
            "SELECT * FROM babbler_entries WHERE entry_id = ?", (entry_id,)
        ).fetchone()
        if row is None:
            return None
        return Entry.from_row(row)

    def fetch_entry_table(
        self,
        order_by: str = "created",
        sort: str = "ASC",
        limit: int = 50,
        start: int = 0,
    ) -> list[Entry]:
        """Page through all entries.

        Args:
            order_by: Column to sort by; unknown columns fall back to created
            sort: ASC or DESC
            limit: Maximum rows, 0 for no limit
            start: Rows to skip
        """
        params: list[Any] = []
        query = f"""
            SELECT * FROM babbler_entries
            {self._order_clause(order_by, sort)}
            {self._limit_clause(limit, start, params)}
        """
        cursor = self.database.connection.execute(query, params)
        return [Entry.from_row(row) for row in cursor.fetchall()]

    def fetch_entries_by_category(
        self,
        category: str,
        sub_category: str = "",
        order_by: str = "created",
        sort: str = "",
        start: int = 0,
        limit: int = 10,
        published_only: bool = False,
    ) -> list[Entry]:
        """Entries in a category (and optionally sub-category).

        Args:
            published_only: Keep only entries with a publish date that are
                neither drafts nor hidden
        """
        conditions = ["category = ?"]
        params: list[Any] = [category]

        if sub_category:
            conditions.append("sub_category = ?")
            params.append(sub_category)

        if published_only:
            conditions.append("published IS NOT NULL AND is_draft = 0 AND is_hidden = 0")

        query = f"""
            SELECT * FROM babbler_entries
            WHERE {" AND ".join(conditions)}
            {self._order_clause(order_by, sort)}
            {self._limit_clause(limit, start, params)}
        """
        cursor = self.database.connection.execute(query, params)
        return [Entry.from_row(row) for row in cursor.fetchall()]

    def fetch_entry_by_category_and_title(
        self,
        category: str,
        title: str,
        sub_category: str = "",
    ) -> Optional[Entry]:
        """First entry in a category whose title matches (SQL LIKE)."""
        conditions = ["category = ?", "title LIKE ?"]
        params: list[Any] = [category, title]

        if sub_category:
            conditions.append("sub_category = ?")
            params.append(sub_category)

        row = self.database.connection.execute(
            f"SELECT * FROM babbler_entries WHERE {' AND '.join(conditions)} ORDER BY entry_id ASC LIMIT 1",
            params,
        ).fetchone()
        if row is None:
            return None
        return Entry.from_row(row)
