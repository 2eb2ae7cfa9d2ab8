"""
tests/conftest.py
-----------------
Shared fixtures: an in-memory stand-in for :class:`DatabaseManager` that
implements the same high-level statements the sync engine issues.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import copy
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Sequence
from unittest.mock import MagicMock, patch

import mysql.connector
import pytest

from config import DatabaseConfig, SyncConfig
from syncer.database import DatabaseError, DatabaseManager

_DDL_NAME_RE = re.compile(r"CREATE TABLE IF NOT EXISTS `([^`]+)`")


@dataclass
class FakeTable:
    name: str
    columns: list[str]
    primary_key: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)
    not_null: set[str] = field(default_factory=set)
    generated: set[str] = field(default_factory=set)

    def empty_copy(self) -> "FakeTable":
        return FakeTable(
            name=self.name,
            columns=list(self.columns),
            primary_key=list(self.primary_key),
            not_null=set(self.not_null),
            generated=set(self.generated),
        )


def make_table(
    name: str,
    columns: Sequence[str],
    primary_key: Sequence[str] = (),
    rows: Sequence[Sequence[Any]] = (),
    not_null: Sequence[str] = (),
    generated: Sequence[str] = (),
) -> FakeTable:
    """Build a table from positional row tuples."""
    return FakeTable(
        name=name,
        columns=list(columns),
        primary_key=list(primary_key),
        rows=[dict(zip(columns, r)) for r in rows],
        not_null=set(not_null),
        generated=set(generated),
    )


class FakeDatabase:
    """In-memory database exposing the DatabaseManager statement helpers."""

    def __init__(self, label: str, tables: Sequence[FakeTable] = (), catalog: dict | None = None) -> None:
        self.label = label
        self.tables: dict[str, FakeTable] = {t.name: t for t in tables}
        self.views: list[str] = []
        # Shared between source and destination so DDL can be "replayed"
        self.catalog: dict[str, FakeTable] = catalog if catalog is not None else {}
        self.fk_checks: list[bool] = []
        self.ddl: list[str] = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_columns_for: set[str] = set()

    def _table(self, name: str) -> FakeTable:
        if name not in self.tables:
            raise DatabaseError(f"Table '{name}' doesn't exist")
        return self.tables[name]

    # --- introspection ---------------------------------------------------

    def list_base_tables(self) -> list[str]:
        return list(self.tables)

    def show_columns(self, table_name: str) -> list[dict[str, Any]]:
        if table_name in self.fail_columns_for:
            raise DatabaseError(f"SHOW COLUMNS denied for '{table_name}'")
        t = self._table(table_name)
        return [
            {
                "Field": c,
                "Type": "varchar(255)",
                "Null": "NO" if c in t.not_null else "YES",
                "Key": "PRI" if c in t.primary_key else "",
                "Default": None,
                "Extra": "STORED GENERATED" if c in t.generated else "",
            }
            for c in t.columns
        ]

    def primary_key_columns(self, table_name: str) -> list[str]:
        return list(self._table(table_name).primary_key)

    def show_create_table(self, table_name: str) -> str:
        t = self._table(table_name)
        self.catalog[table_name] = t
        return f"CREATE TABLE `{table_name}` ({', '.join(t.columns)})"

    def execute_ddl(self, sql: str) -> None:
        self.ddl.append(sql)
        match = _DDL_NAME_RE.search(sql)
        if not match:
            raise DatabaseError(f"Unsupported DDL: {sql}")
        name = match.group(1)
        if name not in self.tables:
            self.tables[name] = self.catalog[name].empty_copy()

    def count_rows(self, table_name: str) -> int:
        return len(self._table(table_name).rows)

    # --- rows ------------------------------------------------------------

    @staticmethod
    def _project(row: dict[str, Any], columns: Sequence[str]) -> dict[str, Any]:
        return {c: row[c] for c in columns}

    def select_window(self, table_name, columns, limit, offset):
        rows = self._table(table_name).rows[offset:offset + limit]
        return [self._project(r, columns) for r in rows]

    def select_after(self, table_name, columns, key_columns, last_key, limit):
        rows = sorted(
            self._table(table_name).rows,
            key=lambda r: tuple(r[k] for k in key_columns),
        )
        if last_key is not None:
            rows = [r for r in rows if tuple(r[k] for k in key_columns) > tuple(last_key)]
        return [self._project(r, columns) for r in rows[:limit]]

    def _matches(self, row, key_columns, key_values) -> bool:
        return all(row[k] == v for k, v in zip(key_columns, key_values))

    def find_row(self, table_name, columns, key_columns, key_values):
        for row in self._table(table_name).rows:
            if self._matches(row, key_columns, key_values):
                return self._project(row, columns)
        return None

    def insert_row(self, table_name, columns, values):
        t = self._table(table_name)
        row = {c: None for c in t.columns}
        row.update(dict(zip(columns, values)))
        for c in t.not_null:
            if row[c] is None:
                raise DatabaseError(f"Column '{c}' cannot be null")
        if t.primary_key:
            key = [row[k] for k in t.primary_key]
            if any(self._matches(r, t.primary_key, key) for r in t.rows):
                raise DatabaseError(f"Duplicate entry {key!r} for key 'PRIMARY'")
        t.rows.append(row)

    def update_row(self, table_name, set_columns, set_values, key_columns, key_values):
        t = self._table(table_name)
        for row in t.rows:
            if self._matches(row, key_columns, key_values):
                row.update(dict(zip(set_columns, set_values)))

    def set_foreign_key_checks(self, enabled: bool) -> None:
        self.fk_checks.append(enabled)

    @contextmanager
    def transaction(self):
        snapshot = copy.deepcopy({n: t.rows for n, t in self.tables.items()})
        try:
            yield
            self.commits += 1
        except Exception:
            for name, rows in snapshot.items():
                self.tables[name].rows = rows
            self.rollbacks += 1
            raise

    # --- test helpers ----------------------------------------------------

    def rows_of(self, table_name: str) -> list[dict[str, Any]]:
        return self._table(table_name).rows


@pytest.fixture
def catalog() -> dict:
    return {}


@pytest.fixture
def source(catalog) -> FakeDatabase:
    return FakeDatabase("source", catalog=catalog)


@pytest.fixture
def destination(catalog) -> FakeDatabase:
    return FakeDatabase("destination", catalog=catalog)


@pytest.fixture
def sync_config() -> SyncConfig:
    return SyncConfig(
        source=DatabaseConfig(database="src_db"),
        destination=DatabaseConfig(database="dst_db"),
        batch_size=1000,
        batch_delay_ms=0,
    )


# ---------------------------------------------------------------------------
# Mocked driver
# ---------------------------------------------------------------------------

def deadlock() -> mysql.connector.Error:
    return mysql.connector.errors.DatabaseError(
        "Deadlock found when trying to get lock", errno=1213
    )


def connected_manager(conn: MagicMock, label: str = "destination") -> DatabaseManager:
    """A real DatabaseManager connected to a mocked driver connection."""
    with patch("syncer.database.mysql.connector.connect", return_value=conn):
        manager = DatabaseManager("h", 3306, "u", "p", "app", label=label)
        manager.connect()
    return manager


@pytest.fixture
def driver_conn() -> MagicMock:
    conn = MagicMock()
    conn.is_connected.return_value = True
    return conn
