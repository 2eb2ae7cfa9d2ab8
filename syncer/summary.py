"""
syncer/summary.py
-----------------
Run-level aggregation and reporting.

``summarize`` is a pure fold over per-table results; rendering to text or
JSON happens only when the caller asks for it.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from models.sync import TableSyncResult

_RULE = "=" * 60


@dataclass
class RunSummary:
    """Aggregated outcome of one run."""
    total_tables: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    key_only: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)
    tables: list[TableSyncResult] = field(default_factory=list)

    @property
    def failed_tables(self) -> list[str]:
        return [table for table, _ in self.errors]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_tables": self.total_tables,
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "key_only": self.key_only,
            "errors": [{"table": t, "error": e} for t, e in self.errors],
            "tables": [r.to_dict() for r in self.tables],
        }

    def write_json(self, path: Path | str) -> None:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    def format_text(self) -> str:
        lines = [
            _RULE,
            "SYNC SUMMARY",
            _RULE,
            f"Tables processed: {self.total_tables}",
            f"Rows inserted: {self.inserted}",
            f"Rows updated: {self.updated}",
            f"Rows skipped (identical): {self.skipped}",
        ]
        if self.key_only:
            lines.append(f"  of which key-only differences: {self.key_only}")
        if self.errors:
            lines.append("")
            lines.append(f"Errors encountered: {len(self.errors)}")
            lines.extend(f"  - {table}: {error}" for table, error in self.errors)
        return "\n".join(lines)


def summarize(results: Iterable[TableSyncResult]) -> RunSummary:
    """
    Fold per-table results into a :class:`RunSummary`.

    Failed tables contribute their error, not their counts; rows from
    batches they committed before failing are still in the destination but
    are not reported as successes.
    """
    summary = RunSummary()
    for result in results:
        summary.total_tables += 1
        summary.tables.append(result)
        if result.error is not None:
            summary.errors.append((result.table_name, result.error))
            continue
        summary.inserted += result.inserted
        summary.updated += result.updated
        summary.skipped += result.skipped
        summary.key_only += result.key_only
    return summary
