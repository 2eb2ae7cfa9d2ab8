"""models/__init__.py"""
from models.sync import (
    Action,
    Batch,
    BatchOutcome,
    ClassificationResult,
    ColumnInfo,
    Row,
    TableDescriptor,
    TableState,
    TableSyncResult,
)

__all__ = [
    "Action",
    "Batch",
    "BatchOutcome",
    "ClassificationResult",
    "ColumnInfo",
    "Row",
    "TableDescriptor",
    "TableState",
    "TableSyncResult",
]
