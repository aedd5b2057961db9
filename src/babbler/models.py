"""Data models for entries, history records, and content rules."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

from dateutil import parser as date_parser

FRONTED_PREFIX = "The "
FRONTED_SUFFIX = ", The"


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format datetime as ISO 8601 with timezone.

    Microsecond precision keeps lexical order equal to chronological order
    for the stored UTC values.
    """
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(s: str) -> datetime:
    """Parse ISO 8601 timestamp string."""
    return datetime.fromisoformat(s)


def parse_datetime(value: Union[str, datetime]) -> datetime:
    """Parse a free-form date string (or pass through a datetime) as UTC.

    Naive values are taken to be UTC.

    Raises:
        ValueError: If the string cannot be read as a date.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = date_parser.parse(value.strip())
        except (OverflowError, date_parser.ParserError) as e:
            raise ValueError(f"Unrecognized date: {value!r}") from e

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def front_title(title: str) -> str:
    """Move a leading "The " to a trailing ", The" for sorting.

    >>> front_title("The Great Gatsby")
    'Great Gatsby, The'
    """
    if title.startswith(FRONTED_PREFIX):
        return title[len(FRONTED_PREFIX):] + FRONTED_SUFFIX
    return title


def _optional_timestamp(value: Optional[str]) -> Optional[datetime]:
    return parse_timestamp(value) if value else None


@dataclass
class Entry:
    """A single versioned content record."""
    entry_id: int
    category: str
    sub_category: str
    title: str
    content: str
    created_by: str
    edited_by: str
    created: datetime
    edited: datetime
    fronted_title: str = ""
    dynamic_content: Optional[str] = None
    published: Optional[datetime] = None
    is_draft: bool = False
    is_hidden: bool = False

    @property
    def is_published(self) -> bool:
        """A null publish date means draft, whatever is_draft says."""
        return self.published is not None and not self.is_draft

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Entry:
        """Build an entry from a babbler_entries row."""
        return cls(
            entry_id=row["entry_id"],
            category=row["category"],
            sub_category=row["sub_category"],
            title=row["title"],
            content=row["content"],
            created_by=row["created_by"],
            edited_by=row["edited_by"],
            created=parse_timestamp(row["created"]),
            edited=parse_timestamp(row["edited"]),
            fronted_title=row["fronted_title"],
            dynamic_content=row["dynamic_content"],
            published=_optional_timestamp(row["published"]),
            is_draft=bool(row["is_draft"]),
            is_hidden=bool(row["is_hidden"]),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert entry to dictionary for JSON serialization."""
        return {
            "entry_id": self.entry_id,
            "category": self.category,
            "sub_category": self.sub_category,
            "title": self.title,
            "fronted_title": self.fronted_title,
            "content": self.content,
            "dynamic_content": self.dynamic_content,
            "created_by": self.created_by,
            "edited_by": self.edited_by,
            "created": format_timestamp(self.created),
            "edited": format_timestamp(self.edited),
            "published": format_timestamp(self.published) if self.published else None,
            "is_draft": self.is_draft,
            "is_hidden": self.is_hidden,
        }


@dataclass(frozen=True)
class HistoryRecord:
    """Snapshot of an entry as it was before an edit or delete."""
    history_id: int
    entry: Entry

    @property
    def entry_id(self) -> int:
        return self.entry.entry_id

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> HistoryRecord:
        return cls(history_id=row["history_id"], entry=Entry.from_row(row))

    def to_dict(self) -> dict[str, Any]:
        return {"history_id": self.history_id, **self.entry.to_dict()}


@dataclass(frozen=True)
class ContentRule:
    """One pattern -> replacement step of the content pipeline."""
    order: int
    pattern: str
    replacement: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> ContentRule:
        return cls(order=row["order"], pattern=row["pattern"], replacement=row["replacement"])

    def to_dict(self) -> dict[str, Any]:
        return {"order": self.order, "pattern": self.pattern, "replacement": self.replacement}
