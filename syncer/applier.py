"""
syncer/applier.py
-----------------
Apply one classified batch to the destination inside a single transaction.

The whole batch commits or none of it does. Batches committed earlier for
the same table are never undone.
"""
from __future__ import annotations

from typing import Sequence

from logger import get_logger
from models.sync import Action, BatchOutcome, ClassificationResult, TableDescriptor
from syncer.database import DatabaseError, DatabaseManager
from syncer.errors import BatchApplyError

log = get_logger(__name__)


class TransactionalApplier:
    """
    Executes INSERT / UPDATE decisions for one batch.

    Example::

        outcome = TransactionalApplier().apply(dest, descriptor, results, batch_number=3)
    """

    def apply(
        self,
        db: DatabaseManager,
        descriptor: TableDescriptor,
        results: Sequence[ClassificationResult],
        batch_number: int = 1,
    ) -> BatchOutcome:
        """
        Run the batch's writes in read order and commit.

        Raises:
            BatchApplyError: On the first failing statement (batch rolled back).
        """
        outcome = BatchOutcome()
        current: ClassificationResult | None = None
        try:
            with db.transaction():
                for current in results:
                    self._apply_one(db, descriptor, current, outcome)
        except DatabaseError as exc:
            key = current.key_values if current is not None else ()
            log.error(
                "Batch %d of '%s' failed, rolled back: %s",
                batch_number, descriptor.name, exc,
            )
            raise BatchApplyError(descriptor.name, batch_number, key, exc) from exc
        return outcome

    @staticmethod
    def _apply_one(
        db: DatabaseManager,
        descriptor: TableDescriptor,
        result: ClassificationResult,
        outcome: BatchOutcome,
    ) -> None:
        row = result.row
        if result.action is Action.INSERT:
            columns = descriptor.insertable_columns
            db.insert_row(descriptor.name, columns, [row.get(c) for c in columns])
            outcome.inserted += 1
        elif result.action is Action.UPDATE:
            columns = result.update_columns
            db.update_row(
                descriptor.name,
                columns,
                [row.get(c) for c in columns],
                descriptor.key_columns,
                result.key_values,
            )
            outcome.updated += 1
        else:
            outcome.skipped += 1
            if result.key_only:
                outcome.key_only += 1
