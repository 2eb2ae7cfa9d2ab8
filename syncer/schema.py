"""
syncer/schema.py
----------------
Table discovery, column metadata and idempotent DDL extraction.

Design Decisions:
    * Only base tables are synced; views are excluded at discovery.
    * ``DEFAULT_GENERATED`` (MySQL 8 marker for ``DEFAULT CURRENT_TIMESTAMP``)
      is an ordinary writable column. Only VIRTUAL / STORED generated columns
      are excluded from writes.
    * Driver failures are re-raised as :class:`IntrospectionError` so the
      orchestrator can fail just the one table.
"""
from __future__ import annotations

import re

from logger import get_logger
from models.sync import ColumnInfo, TableDescriptor
from syncer.database import DatabaseError, DatabaseManager
from syncer.errors import IntrospectionError

log = get_logger(__name__)

_CREATE_TABLE_RE = re.compile(r"^\s*CREATE\s+(TEMPORARY\s+)?TABLE\s+", re.IGNORECASE)
_IF_NOT_EXISTS_RE = re.compile(r"^\s*CREATE\s+(TEMPORARY\s+)?TABLE\s+IF\s+NOT\s+EXISTS\b", re.IGNORECASE)
_GENERATED_MARKERS = ("VIRTUAL GENERATED", "STORED GENERATED")


def list_tables(db: DatabaseManager) -> list[str]:
    """Return base table names from *db* in discovery order."""
    return db.list_base_tables()


def _is_generated(extra: str | None) -> bool:
    upper = (extra or "").upper()
    return any(marker in upper for marker in _GENERATED_MARKERS)


def get_columns(db: DatabaseManager, table_name: str) -> list[ColumnInfo]:
    """
    Read column metadata for *table_name*.

    Raises:
        IntrospectionError: If the columns cannot be read or the table has none.
    """
    try:
        rows = db.show_columns(table_name)
    except DatabaseError as exc:
        raise IntrospectionError(
            table_name, f"Cannot read columns of '{table_name}': {exc}"
        ) from exc
    if not rows:
        raise IntrospectionError(table_name, f"Table '{table_name}' has no columns.")
    return [
        ColumnInfo(
            name=row["Field"],
            is_generated=_is_generated(row.get("Extra")),
            is_primary_key_part=str(row.get("Key") or "").upper() == "PRI",
        )
        for row in rows
    ]


def make_idempotent(create_sql: str) -> str:
    """
    Rewrite a ``CREATE TABLE`` statement as ``CREATE TABLE IF NOT EXISTS``.

    Statements that already carry ``IF NOT EXISTS`` are returned unchanged.

    Example::

        make_idempotent("CREATE TABLE `t` (id INT)")
        # "CREATE TABLE IF NOT EXISTS `t` (id INT)"
    """
    if _IF_NOT_EXISTS_RE.match(create_sql):
        return create_sql
    match = _CREATE_TABLE_RE.match(create_sql)
    if not match:
        raise ValueError(f"Not a CREATE TABLE statement: {create_sql[:80]!r}")
    return create_sql[: match.end()] + "IF NOT EXISTS " + create_sql[match.end():]


def get_create_statement(db: DatabaseManager, table_name: str) -> str:
    """Return the idempotent DDL for *table_name* as reported by *db*."""
    try:
        return make_idempotent(db.show_create_table(table_name))
    except (DatabaseError, ValueError) as exc:
        raise IntrospectionError(
            table_name, f"Cannot extract DDL for '{table_name}': {exc}"
        ) from exc


def ensure_structure(
    source: DatabaseManager, destination: DatabaseManager, table_name: str
) -> None:
    """Create *table_name* on the destination if it is missing."""
    ddl = get_create_statement(source, table_name)
    try:
        destination.execute_ddl(ddl)
    except DatabaseError as exc:
        raise IntrospectionError(
            table_name, f"Cannot create '{table_name}' on destination: {exc}"
        ) from exc
    log.info("Table structure ensured for '%s'.", table_name)


def build_descriptor(
    table_name: str,
    columns: list[ColumnInfo],
    key_columns: list[str],
    has_primary_key: bool,
) -> TableDescriptor:
    return TableDescriptor(
        name=table_name,
        columns=tuple(c.name for c in columns),
        insertable_columns=tuple(c.name for c in columns if not c.is_generated),
        key_columns=tuple(key_columns),
        has_primary_key=has_primary_key,
    )
