"""Entry search strategies and category listings.

Each strategy orders its own results; there is no shared ranking.
"""

from __future__ import annotations

import re
import sqlite3
from dataclasses import dataclass
from typing import Any

from .database import Database
from .errors import QueryError
from .models import Entry

ANY_CATEGORY = "*"

_UNSAFE_CHARS = re.compile(r"[^\w\s]+")
_WORD = re.compile(r"\w+")


def sanitize_search_string(text: str) -> str:
    """Remove all characters that are neither word characters nor whitespace."""
    return _UNSAFE_CHARS.sub("", text)


def _escape_like(text: str) -> str:
    """Escape LIKE wildcards so text matches literally (ESCAPE '\\')."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class ThresholdMatch:
    """An entry with the number of distinct query words found in it."""
    entry: Entry
    threshold: int

    def to_dict(self) -> dict[str, Any]:
        return {**self.entry.to_dict(), "threshold": self.threshold}


class SearchEngine:
    """Read-only queries over the entries table."""

    def __init__(self, database: Database):
        self.database = database

    def _select(self, conditions: list[str], params: list[Any], order: str = "entry_id ASC") -> list[Entry]:
        where_clause = ""
        if conditions:
            where_clause = "WHERE " + " AND ".join(conditions)
        cursor = self.database.connection.execute(
            f"SELECT * FROM babbler_entries {where_clause} ORDER BY {order}", params
        )
        return [Entry.from_row(row) for row in cursor.fetchall()]

    @staticmethod
    def _category_filter(category: str, conditions: list[str], params: list[Any]) -> None:
        if category and category != ANY_CATEGORY:
            conditions.append("category = ?")
            params.append(category.strip())

    def search_exact(self, text: str, category: str = ANY_CATEGORY) -> list[Entry]:
        """Entries whose content contains text (ASCII case-insensitive)."""
        conditions = ["content LIKE ? ESCAPE '\\'"]
        params: list[Any] = [f"%{_escape_like(text.strip())}%"]
        self._category_filter(category, conditions, params)
        return self._select(conditions, params)

    def search_fuzzy(self, text: str, category: str = ANY_CATEGORY) -> list[Entry]:
        """Entries whose content contains the words of text, in order, with
        anything in between.
        """
        tokens = sanitize_search_string(text).split()
        pattern = "%" + "%".join(_escape_like(token) for token in tokens) + "%"
        if not tokens:
            pattern = "%"

        conditions = ["content LIKE ? ESCAPE '\\'"]
        params: list[Any] = [pattern]
        self._category_filter(category, conditions, params)
        return self._select(conditions, params)

    def search_threshold(self, words: str, category: str = ANY_CATEGORY) -> list[ThresholdMatch]:
        """Rank entries by how many distinct query words they contain.

        A query word scores 1 when it appears as a whole word in the content
        (case-sensitive); repeats of the word in the content or the query do
        not add to the score. Entries scoring 0 are dropped. Results are
        ordered by score descending, then entry_id ascending.
        """
        query_words = list(dict.fromkeys(sanitize_search_string(words).split()))
        if not query_words:
            return []

        conditions: list[str] = []
        params: list[Any] = []
        self._category_filter(category, conditions, params)

        matches = []
        for entry in self._select(conditions, params):
            content_words = set(_WORD.findall(entry.content))
            score = sum(1 for word in query_words if word in content_words)
            if score > 0:
                matches.append(ThresholdMatch(entry=entry, threshold=score))

        matches.sort(key=lambda m: (-m.threshold, m.entry.entry_id))
        return matches

    def search_regex(self, pattern: str, category: str = ANY_CATEGORY) -> list[Entry]:
        """Entries whose content matches a regular expression (Python syntax).

        Raises:
            QueryError: If the pattern is invalid.
        """
        try:
            re.compile(pattern)
        except (re.error, OverflowError) as e:
            raise QueryError(f"Invalid search pattern {pattern!r}: {e}") from e

        conditions = ["content REGEXP ?"]
        params: list[Any] = [pattern]
        self._category_filter(category, conditions, params)
        try:
            return self._select(conditions, params)
        except sqlite3.OperationalError as e:
            raise QueryError(f"Search pattern {pattern!r} failed: {e}") from e

    def search_title(self, text: str) -> list[Entry]:
        """Entries whose fronted or plain title contains the sanitized text."""
        like = f"%{_escape_like(sanitize_search_string(text).strip())}%"
        return self._select(
            ["(fronted_title LIKE ? ESCAPE '\\' OR title LIKE ? ESCAPE '\\')"],
            [like, like],
            order="fronted_title ASC, entry_id ASC",
        )

    # ========== Category listings ==========

    def fetch_categories(self) -> dict[str, int]:
        """Category name -> entry count, ordered by name."""
        cursor = self.database.connection.execute(
            "SELECT category, COUNT(*) FROM babbler_entries GROUP BY category ORDER BY category ASC"
        )
        return {row[0]: row[1] for row in cursor.fetchall()}

    def fetch_sub_categories(self, category: str = "") -> dict[str, int]:
        """Sub-category name -> entry count, optionally within one category."""
        where_clause = ""
        params: list[Any] = []
        if category:
            where_clause = "WHERE category = ?"
            params.append(category)

        cursor = self.database.connection.execute(
            f"""
            SELECT sub_category, COUNT(*) FROM babbler_entries
            {where_clause}
            GROUP BY sub_category
            ORDER BY sub_category ASC
            """,
            params,
        )
        return {row[0]: row[1] for row in cursor.fetchall()}
