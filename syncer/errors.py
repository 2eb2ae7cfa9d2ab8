"""
syncer/errors.py
----------------
Table-scoped failures raised by the sync engine.

Connection-level failures live in :mod:`syncer.database`
(``DatabaseConnectionError``) because they are fatal to the whole run.
Everything here is caught by the orchestrator and recorded against the
table that raised it.
"""
from __future__ import annotations

from typing import Any, Sequence


class SyncError(Exception):
    """Base class for failures scoped to a single table."""

    def __init__(self, table_name: str, message: str) -> None:
        super().__init__(message)
        self.table_name = table_name


class IntrospectionError(SyncError):
    """Columns, keys or DDL could not be read (or applied) for a table."""


class KeyMismatchError(SyncError):
    """Source and destination disagree on a table's identity columns."""

    def __init__(
        self,
        table_name: str,
        source_keys: Sequence[str],
        destination_keys: Sequence[str],
    ) -> None:
        super().__init__(
            table_name,
            f"Key columns differ for '{table_name}': source {list(source_keys)}, "
            f"destination {list(destination_keys)}",
        )
        self.source_keys = tuple(source_keys)
        self.destination_keys = tuple(destination_keys)


class BatchApplyError(SyncError):
    """A statement inside a transactional batch failed; the batch was rolled back."""

    def __init__(
        self,
        table_name: str,
        batch_number: int,
        key_values: Sequence[Any],
        cause: Exception,
    ) -> None:
        super().__init__(
            table_name,
            f"Batch {batch_number} of '{table_name}' rolled back at key "
            f"{tuple(key_values)!r}: {cause}",
        )
        self.batch_number = batch_number
        self.key_values = tuple(key_values)
