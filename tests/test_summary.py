"""
tests/test_summary.py
---------------------
Unit tests for syncer/summary.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import json
from pathlib import Path

from models.sync import BatchOutcome, TableSyncResult
from syncer.summary import RunSummary, summarize


def _result(name, inserted=0, updated=0, skipped=0, error=None) -> TableSyncResult:
    result = TableSyncResult(table_name=name, error=error)
    result.add_batch(BatchOutcome(inserted=inserted, updated=updated, skipped=skipped))
    return result


class TestSummarize:
    def test_totals(self) -> None:
        summary = summarize([_result("a", 3, 1, 2), _result("b", 1, 0, 5)])
        assert summary.total_tables == 2
        assert (summary.inserted, summary.updated, summary.skipped) == (4, 1, 7)
        assert summary.errors == []

    def test_failed_tables_excluded_from_counts(self) -> None:
        summary = summarize([
            _result("a", 1),
            _result("b", 5, error="boom"),
            _result("c", 2),
        ])
        assert summary.inserted == 3
        assert summary.errors == [("b", "boom")]
        assert summary.total_tables == 3

    def test_error_order_preserved(self) -> None:
        summary = summarize([_result(n, error=f"e-{n}") for n in ("z", "a", "m")])
        assert summary.failed_tables == ["z", "a", "m"]

    def test_empty(self) -> None:
        summary = summarize([])
        assert summary == RunSummary()


class TestRendering:
    def test_text(self) -> None:
        text = summarize([_result("a", 3), _result("b", error="broken")]).format_text()
        assert "Tables processed: 2" in text
        assert "Rows inserted: 3" in text
        assert "  - b: broken" in text

    def test_json(self, tmp_path: Path) -> None:
        out = tmp_path / "reports" / "run.json"
        summarize([_result("a", 1, 2, 3)]).write_json(out)
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["inserted"] == 1
        assert data["tables"][0]["table"] == "a"
        assert data["tables"][0]["batches"] == 1
