"""
syncer/classifier.py
--------------------
Three-way row classification: INSERT, UPDATE or SKIP.

For every source row the destination is queried by key. A missing row is an
INSERT. A present row whose non-key insertable columns all compare equal is a
SKIP; otherwise it is an UPDATE of every non-key insertable column (not just
the differing ones).

A table whose insertable columns are all key columns has nothing to update.
A matched row that still differs (e.g. a case-insensitive collation matched
``'A'`` to ``'a'``) is a SKIP flagged ``key_only`` so it can be reported
apart from a true no-op.
"""
from __future__ import annotations

from typing import Any, Callable, Iterable, Sequence

from logger import get_logger
from models.sync import Action, ClassificationResult, Row, TableDescriptor
from syncer.database import DatabaseManager
from syncer.values import rows_differ

log = get_logger(__name__)

Lookup = Callable[[Sequence[Any]], "Row | None"]


class DestinationLookup:
    """Callable that fetches the destination row matching a key."""

    def __init__(self, db: DatabaseManager, descriptor: TableDescriptor) -> None:
        self._db = db
        self._descriptor = descriptor

    def __call__(self, key_values: Sequence[Any]) -> Row | None:
        d = self._descriptor
        return self._db.find_row(d.name, d.read_columns, d.key_columns, key_values)


def classify(
    source_row: Row, lookup: Lookup, descriptor: TableDescriptor
) -> ClassificationResult:
    key_values = descriptor.key_values(source_row)
    existing = lookup(key_values)

    if existing is None:
        return ClassificationResult(Action.INSERT, source_row, key_values)

    update_columns = descriptor.update_columns
    if not update_columns:
        differing = rows_differ(source_row, existing, descriptor.insertable_columns)
        if differing:
            log.debug(
                "'%s' row %r differs only in key columns %s; nothing to update.",
                descriptor.name, key_values, differing,
            )
        return ClassificationResult(
            Action.SKIP, source_row, key_values, key_only=bool(differing)
        )

    if rows_differ(source_row, existing, update_columns):
        return ClassificationResult(
            Action.UPDATE, source_row, key_values, update_columns=update_columns
        )
    return ClassificationResult(Action.SKIP, source_row, key_values)


def classify_batch(
    rows: Iterable[Row], lookup: Lookup, descriptor: TableDescriptor
) -> list[ClassificationResult]:
    """Classify *rows* in read order."""
    return [classify(row, lookup, descriptor) for row in rows]
