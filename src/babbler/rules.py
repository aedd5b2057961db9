"""Content rule pipeline: ordered pattern -> replacement rewrites.

Rules are re-read on every call, so authoring changes are visible to the
next write without any cache invalidation.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .database import Database
from .errors import StoreError, ValidationError
from .models import ContentRule

logger = logging.getLogger(__name__)

# SQLite INTEGER range
_ORDER_LIMIT = 2**63


@dataclass
class RuleResult:
    """Output of one pipeline run."""
    content: str
    skipped: list[ContentRule] = field(default_factory=list)


class RuleEngine:
    """Applies and maintains the ordered content rule set."""

    def __init__(self, database: Database):
        self.database = database

    def list_rules(self) -> list[ContentRule]:
        """All rules in application order."""
        cursor = self.database.connection.execute(
            'SELECT "order", pattern, replacement FROM babbler_rules ORDER BY "order" ASC'
        )
        return [ContentRule.from_row(row) for row in cursor.fetchall()]

    def transform(self, content: str) -> RuleResult:
        """Fold every rule over content, reporting the ones that failed.

        A rule whose pattern or replacement template is malformed is skipped
        and the rest of the pipeline still runs.
        """
        result = RuleResult(content=content)
        for rule in self.list_rules():
            try:
                result.content = re.sub(rule.pattern, rule.replacement, result.content)
            except (re.error, OverflowError) as e:
                logger.warning(
                    "Skipping content rule %d (%r -> %r): %s",
                    rule.order, rule.pattern, rule.replacement, e,
                )
                result.skipped.append(rule)
        return result

    def apply(self, content: str) -> str:
        """Derive dynamic content from raw content."""
        return self.transform(content).content

    def add_rule(self, pattern: str, replacement: str = "", order: Optional[int] = None) -> ContentRule:
        """Add a rule to the pipeline.

        Args:
            pattern: Regular expression, unique across rules
            replacement: Replacement template (supports group references)
            order: Position key; defaults to one past the current last rule

        Raises:
            ValidationError: If the pattern is empty or does not compile, or the
                order is not an integer SQLite can store.
            StoreError: If the pattern or order is already taken.
        """
        if not pattern:
            raise ValidationError("Rule pattern must not be empty")
        try:
            re.compile(pattern)
        except (re.error, OverflowError) as e:
            raise ValidationError(f"Invalid rule pattern {pattern!r}: {e}") from e
        if order is not None and (isinstance(order, bool) or not isinstance(order, int)):
            raise ValidationError(f"Rule order must be an integer, got {order!r}")
        if order is not None and not -_ORDER_LIMIT <= order < _ORDER_LIMIT:
            raise ValidationError(f"Rule order out of range: {order}")

        try:
            with self.database.transaction() as conn:
                if conn.execute(
                    "SELECT 1 FROM babbler_rules WHERE pattern = ?", (pattern,)
                ).fetchone():
                    raise StoreError(f"Duplicate rule pattern: {pattern!r}")

                if order is None:
                    order = conn.execute(
                        'SELECT COALESCE(MAX("order"), 0) + 1 FROM babbler_rules'
                    ).fetchone()[0]

                conn.execute(
                    'INSERT INTO babbler_rules ("order", pattern, replacement) VALUES (?, ?, ?)',
                    (order, pattern, replacement),
                )
        except sqlite3.IntegrityError as e:
            raise StoreError(f"Cannot add rule at order {order}: {e}") from e
        except sqlite3.Error as e:
            raise StoreError(f"Failed to add rule: {e}") from e

        logger.debug("Added content rule %d: %r -> %r", order, pattern, replacement)
        return ContentRule(order=order, pattern=pattern, replacement=replacement)

    def remove_rule(self, order: int) -> bool:
        """Remove the rule at the given order key.

        Returns:
            True if a rule was removed, False if none had that key
        """
        try:
            with self.database.transaction() as conn:
                cursor = conn.execute('DELETE FROM babbler_rules WHERE "order" = ?', (order,))
        except sqlite3.Error as e:
            raise StoreError(f"Failed to remove rule {order}: {e}") from e
        return cursor.rowcount == 1

    def reorder(self, new_order: Sequence[int]) -> list[ContentRule]:
        """Rearrange the pipeline.

        new_order lists every existing order key exactly once, in the desired
        application sequence. The existing keys, sorted, are handed out to the
        rules in that sequence; all rules move or none do.

        Example: keys [10, 20, 30] reordered as [30, 10, 20] give the rule
        formerly at 30 the key 10, the one at 10 the key 20, and the one at 20
        the key 30.

        Raises:
            ValidationError: If new_order is not a permutation of the keys.
            StoreError: If the update fails; nothing is changed.
        """
        requested = list(new_order)

        try:
            with self.database.transaction() as conn:
                current = [
                    row[0]
                    for row in conn.execute('SELECT "order" FROM babbler_rules ORDER BY "order" ASC')
                ]

                duplicates = sorted({k for k in requested if requested.count(k) > 1})
                if duplicates:
                    raise ValidationError(f"Duplicate rule keys in new order: {duplicates}")
                missing = sorted(set(current) - set(requested))
                unknown = sorted(set(requested) - set(current))
                if missing or unknown:
                    raise ValidationError(
                        f"New order must list every rule once (missing: {missing}, unknown: {unknown})"
                    )

                # Park every rule above the current maximum so no final key collides
                top = current[-1] if current else 0
                for i, key in enumerate(requested):
                    conn.execute(
                        'UPDATE babbler_rules SET "order" = ? WHERE "order" = ?',
                        (top + 1 + i, key),
                    )
                for i, target in enumerate(current):
                    conn.execute(
                        'UPDATE babbler_rules SET "order" = ? WHERE "order" = ?',
                        (target, top + 1 + i),
                    )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to reorder rules: {e}") from e

        logger.debug("Reordered content rules: %s", requested)
        return self.list_rules()
