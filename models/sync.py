"""
models/sync.py
--------------
Typed data models shared by the sync engine.

Design Decision:
    Table-level metadata is a frozen dataclass computed once per table and
    never mutated afterwards. Per-row and per-batch results are plain
    dataclasses that the orchestrator folds into a :class:`TableSyncResult`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# column name → driver value, in column order
Row = dict[str, Any]
Batch = list[Row]


class Action(str, Enum):
    """Per-row decision taken by the classifier."""
    INSERT = "insert"
    UPDATE = "update"
    SKIP = "skip"


class TableState(str, Enum):
    """Lifecycle of one table inside a run."""
    PENDING = "pending"
    STRUCTURE_ENSURED = "structure_ensured"
    KEYS_RESOLVED = "keys_resolved"
    BATCHING = "batching"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class ColumnInfo:
    """One row of ``SHOW COLUMNS`` reduced to what the engine needs."""
    name: str
    is_generated: bool = False
    is_primary_key_part: bool = False


@dataclass(frozen=True)
class TableDescriptor:
    """
    Structure of one table as seen by the sync pass.

    Attributes:
        name:                Table name.
        columns:             All column names, in table order.
        insertable_columns:  Columns that may be written (no generated columns).
        key_columns:         Identity columns used to match rows.
        has_primary_key:     False when ``key_columns`` fell back to all columns.
    """
    name: str
    columns: tuple[str, ...]
    insertable_columns: tuple[str, ...]
    key_columns: tuple[str, ...]
    has_primary_key: bool = True

    @property
    def update_columns(self) -> tuple[str, ...]:
        keys = set(self.key_columns)
        return tuple(c for c in self.insertable_columns if c not in keys)

    @property
    def read_columns(self) -> tuple[str, ...]:
        """Insertable columns plus any key column that is not insertable."""
        extra = tuple(c for c in self.key_columns if c not in self.insertable_columns)
        return self.insertable_columns + extra

    def key_values(self, row: Row) -> tuple[Any, ...]:
        return tuple(row.get(c) for c in self.key_columns)


@dataclass
class ClassificationResult:
    """Outcome of classifying one source row against the destination."""
    action: Action
    row: Row
    key_values: tuple[Any, ...]
    update_columns: tuple[str, ...] = ()
    # A differing row on a table whose only insertable columns are keys
    key_only: bool = False


@dataclass
class BatchOutcome:
    """Counts produced by applying one committed batch."""
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    key_only: int = 0


@dataclass
class TableSyncResult:
    """Outcome of syncing one table."""
    table_name: str
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    key_only: int = 0
    batches: int = 0
    state: TableState = TableState.PENDING
    warnings: list[str] = field(default_factory=list)
    error: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    def add_batch(self, outcome: BatchOutcome) -> None:
        self.inserted += outcome.inserted
        self.updated += outcome.updated
        self.skipped += outcome.skipped
        self.key_only += outcome.key_only
        self.batches += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table_name,
            "state": self.state.value,
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "key_only": self.key_only,
            "batches": self.batches,
            "warnings": list(self.warnings),
            "error": self.error,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }

    def __str__(self) -> str:
        status = "OK" if self.success else "FAILED"
        parts = [
            f"[{status}] {self.table_name}: +{self.inserted} inserted, "
            f"~{self.updated} updated, ={self.skipped} skipped"
        ]
        if self.warnings:
            parts.append(f"  Warnings: {'; '.join(self.warnings)}")
        if self.error:
            parts.append(f"  Error: {self.error}")
        return "\n".join(parts)
