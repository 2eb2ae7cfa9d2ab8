"""
syncer/reader.py
----------------
Pull-based batch reading from the source database.

Design Decisions:
    * Tables with a declared primary key are paged by key ("keyset"
      pagination): ``WHERE (pk) > (last seen pk) ORDER BY pk``. Pages stay
      disjoint even if the source is written to during the sync.
    * Tables without a primary key have no stable order to page on, so they
      fall back to LIMIT/OFFSET in the server's natural order, stopping at
      the row count captured before the first batch.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Sequence

from logger import get_logger
from models.sync import Batch, TableDescriptor
from syncer.database import DatabaseManager

log = get_logger(__name__)


def read_batch(
    db: DatabaseManager,
    table_name: str,
    columns: Sequence[str],
    offset: int,
    size: int,
) -> Batch:
    """Read up to *size* rows starting at *offset* (natural order)."""
    return db.select_window(table_name, columns, size, offset)


def read_batch_after(
    db: DatabaseManager,
    table_name: str,
    columns: Sequence[str],
    key_columns: Sequence[str],
    last_key: Sequence[Any] | None,
    size: int,
) -> Batch:
    """Read up to *size* rows whose key sorts after *last_key*."""
    return db.select_after(table_name, columns, key_columns, last_key, size)


@dataclass
class BatchWindow:
    """One batch plus where it sits in the table."""
    number: int
    offset: int
    rows: Batch

    @property
    def size(self) -> int:
        return len(self.rows)


class BatchReader:
    """
    Iterate a source table in fixed-size batches.

    Args:
        db:          Source connection.
        descriptor:  Table structure and key columns.
        batch_size:  Rows per batch.
        row_count:   Row count captured before batching starts.

    Example::

        reader = BatchReader(source, descriptor, 1000, source.count_rows("t"))
        for window in reader.iter_batches():
            handle(window.rows)
    """

    def __init__(
        self,
        db: DatabaseManager,
        descriptor: TableDescriptor,
        batch_size: int,
        row_count: int,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._db = db
        self._descriptor = descriptor
        self._batch_size = batch_size
        self._row_count = row_count

    @property
    def uses_keyset(self) -> bool:
        return self._descriptor.has_primary_key

    def iter_batches(self) -> Iterator[BatchWindow]:
        if self.uses_keyset:
            return self._iter_keyset()
        return self._iter_offset()

    def _iter_offset(self) -> Iterator[BatchWindow]:
        d = self._descriptor
        offset = 0
        number = 1
        while offset < self._row_count:
            rows = read_batch(self._db, d.name, d.read_columns, offset, self._batch_size)
            if not rows:
                break
            yield BatchWindow(number=number, offset=offset, rows=rows)
            offset += len(rows)
            number += 1

    def _iter_keyset(self) -> Iterator[BatchWindow]:
        d = self._descriptor
        last_key: tuple[Any, ...] | None = None
        offset = 0
        number = 1
        while True:
            rows = read_batch_after(
                self._db, d.name, d.read_columns, d.key_columns, last_key, self._batch_size
            )
            if not rows:
                break
            yield BatchWindow(number=number, offset=offset, rows=rows)
            if len(rows) < self._batch_size:
                break
            last_key = d.key_values(rows[-1])
            offset += len(rows)
            number += 1
