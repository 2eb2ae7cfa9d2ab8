"""syncer/__init__.py"""
from syncer.applier import TransactionalApplier
from syncer.classifier import DestinationLookup, classify, classify_batch
from syncer.database import (
    ConnectionLostError,
    DatabaseConnectionError,
    DatabaseError,
    DatabaseManager,
)
from syncer.errors import BatchApplyError, IntrospectionError, KeyMismatchError, SyncError
from syncer.orchestrator import SyncOrchestrator, sync_databases
from syncer.reader import BatchReader, read_batch, read_batch_after
from syncer.summary import RunSummary, summarize
from syncer.values import values_equal

__all__ = [
    "TransactionalApplier",
    "DestinationLookup",
    "classify",
    "classify_batch",
    "ConnectionLostError",
    "DatabaseConnectionError",
    "DatabaseError",
    "DatabaseManager",
    "BatchApplyError",
    "IntrospectionError",
    "KeyMismatchError",
    "SyncError",
    "SyncOrchestrator",
    "sync_databases",
    "BatchReader",
    "read_batch",
    "read_batch_after",
    "RunSummary",
    "summarize",
    "values_equal",
]
