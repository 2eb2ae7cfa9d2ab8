"""
syncer/orchestrator.py
----------------------
Sync engine: drives every source table through the pipeline

    ensure structure → resolve keys → read batch → classify → apply

Design Decisions:
    * The orchestrator is a plain class with injected dependencies (two
      connected :class:`DatabaseManager` instances and a :class:`SyncConfig`).
      No global state.
    * Progress is reported via a callback (``progress_cb``) so callers can
      display updates without coupling this module to any UI.
    * Tables and batches are processed strictly one after another.
    * A failure inside one table is recorded against that table and the run
      moves on. Only connection failures (raised before the run starts) are
      fatal.
    * Foreign key checks are disabled on the destination for the whole run so
      tables can be created and filled in discovery order.
"""
from __future__ import annotations

import time
from typing import Callable

from config import SyncConfig
from logger import get_logger
from models.sync import TableState, TableSyncResult
from syncer import schema
from syncer.applier import TransactionalApplier
from syncer.classifier import DestinationLookup, classify_batch
from syncer.database import DatabaseError, DatabaseManager
from syncer.errors import SyncError
from syncer.keys import reconcile_key_columns, resolve_key_columns
from syncer.reader import BatchReader
from syncer.summary import RunSummary, summarize

log = get_logger(__name__)

ProgressCallback = Callable[[str, int, int], None]  # message, current, total


class SyncOrchestrator:
    """
    Reconciles every table of *source* into *destination*.

    Args:
        source:       Connected source :class:`DatabaseManager`.
        destination:  Connected destination :class:`DatabaseManager`.
        config:       Run configuration (batch size, skip list, ...).
        progress_cb:  Optional callback ``(message, current, total)``.
        applier:      Batch applier; replaceable in tests.
        sleep:        Delay function used between full batches.

    Example::

        orchestrator = SyncOrchestrator(source=src, destination=dst, config=cfg)
        summary = orchestrator.run()
        print(summary.format_text())
    """

    def __init__(
        self,
        source: DatabaseManager,
        destination: DatabaseManager,
        config: SyncConfig,
        progress_cb: ProgressCallback | None = None,
        applier: TransactionalApplier | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._source = source
        self._destination = destination
        self._config = config
        self._progress_cb = progress_cb or self._default_progress
        self._applier = applier or TransactionalApplier()
        self._sleep = sleep

    @staticmethod
    def _default_progress(msg: str, current: int, total: int) -> None:
        log.info("%s (%d/%s)", msg, current, total if total else "?")

    def _progress(self, msg: str, current: int = 0, total: int = 0) -> None:
        self._progress_cb(msg, current, total)

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def tables_to_sync(self) -> list[str]:
        """Source base tables minus the configured skip list, in discovery order."""
        tables = schema.list_tables(self._source)
        skipped = [t for t in tables if t in self._config.skip_tables]
        if skipped:
            log.warning("Skipping tables: %s", ", ".join(skipped))
        return [t for t in tables if t not in self._config.skip_tables]

    def run(self) -> RunSummary:
        """
        Sync every table and return the run summary.

        Raises:
            DatabaseError: Only if the table list cannot be read or foreign
                           key checks cannot be disabled.
        """
        tables = self.tables_to_sync()
        if not tables:
            log.warning("No tables found in source database.")
            return summarize([])

        log.info("Found %d table(s) to sync.", len(tables))
        results: list[TableSyncResult] = []

        self._destination.set_foreign_key_checks(False)
        try:
            for index, table in enumerate(tables, start=1):
                self._progress(f"Syncing table {table}", index, len(tables))
                results.append(self.sync_table(table))
        finally:
            try:
                self._destination.set_foreign_key_checks(True)
            except DatabaseError as exc:
                log.error("Could not re-enable foreign key checks: %s", exc)

        return summarize(results)

    def sync_table(self, table_name: str) -> TableSyncResult:
        """Run the full pipeline for one table. Never raises table-scoped errors."""
        start = time.monotonic()
        result = TableSyncResult(table_name=table_name)
        try:
            self._sync_table(table_name, result)
        except (SyncError, DatabaseError) as exc:
            result.error = str(exc)
            log.error(
                "Error syncing table '%s' (state %s): %s",
                table_name, result.state.value, exc,
            )
            self._set_state(result, TableState.ERROR)
        finally:
            result.elapsed_seconds = time.monotonic() - start
        log.info("%s", result)
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _set_state(result: TableSyncResult, state: TableState) -> None:
        log.debug("'%s': %s → %s", result.table_name, result.state.value, state.value)
        result.state = state

    def _sync_table(self, table_name: str, result: TableSyncResult) -> None:
        src, dst = self._source, self._destination

        schema.ensure_structure(src, dst, table_name)
        self._set_state(result, TableState.STRUCTURE_ENSURED)

        columns = schema.get_columns(src, table_name)
        if not any(not c.is_generated for c in columns):
            warning = f"Table {table_name} has no insertable columns."
            log.warning("%s Skipping.", warning)
            result.warnings.append(warning)
            self._set_state(result, TableState.DONE)
            return

        source_keys, has_primary_key = resolve_key_columns(src, table_name)
        destination_keys, _ = resolve_key_columns(dst, table_name)
        key_columns, warning = reconcile_key_columns(
            table_name, source_keys, destination_keys, self._config.allow_key_mismatch
        )
        if warning:
            result.warnings.append(warning)
        descriptor = schema.build_descriptor(table_name, columns, key_columns, has_primary_key)
        self._set_state(result, TableState.KEYS_RESOLVED)

        source_count = src.count_rows(table_name)
        destination_count = dst.count_rows(table_name)
        log.info(
            "'%s': source rows %d, destination rows %d.",
            table_name, source_count, destination_count,
        )
        self._set_state(result, TableState.BATCHING)
        if source_count == 0:
            log.info("No rows in source '%s'.", table_name)
            self._set_state(result, TableState.DONE)
            return

        batch_size = self._config.batch_size
        reader = BatchReader(src, descriptor, batch_size, source_count)
        lookup = DestinationLookup(dst, descriptor)

        for window in reader.iter_batches():
            classified = classify_batch(window.rows, lookup, descriptor)
            outcome = self._applier.apply(dst, descriptor, classified, window.number)
            result.add_batch(outcome)
            log.debug(
                "'%s' batch %d (offset %d): +%d ~%d =%d",
                table_name, window.number, window.offset,
                outcome.inserted, outcome.updated, outcome.skipped,
            )
            self._progress(
                f"Syncing {table_name}: {window.offset + window.size} rows",
                window.offset + window.size,
                source_count,
            )
            if window.size == batch_size and self._config.batch_delay_ms:
                self._sleep(self._config.batch_delay_ms / 1000)

        self._set_state(result, TableState.DONE)


def sync_databases(
    config: SyncConfig, progress_cb: ProgressCallback | None = None
) -> RunSummary:
    """
    Connect to both databases, run the sync and close both connections.

    Raises:
        DatabaseConnectionError: If either database cannot be reached.
    """
    with DatabaseManager.from_config(
        config.source, label="source", max_retries=config.connect_retries
    ) as source, DatabaseManager.from_config(
        config.destination, label="destination", max_retries=config.connect_retries
    ) as destination:
        return SyncOrchestrator(source, destination, config, progress_cb).run()
