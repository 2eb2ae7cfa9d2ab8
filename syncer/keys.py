"""
syncer/keys.py
--------------
Identity-column resolution for a table.

A table's key is its declared primary key (in declared order). Without one,
every column is the key: the whole row is its own identity.
"""
from __future__ import annotations

from typing import Sequence

from logger import get_logger
from syncer.database import DatabaseError, DatabaseManager
from syncer.errors import IntrospectionError, KeyMismatchError

log = get_logger(__name__)


def resolve_key_columns(db: DatabaseManager, table_name: str) -> tuple[list[str], bool]:
    """
    Return ``(key_columns, has_primary_key)`` for *table_name* on *db*.

    Raises:
        IntrospectionError: If keys or columns cannot be read.
    """
    try:
        primary = db.primary_key_columns(table_name)
        if primary:
            return primary, True
        columns = [row["Field"] for row in db.show_columns(table_name)]
    except DatabaseError as exc:
        raise IntrospectionError(
            table_name, f"Cannot resolve key columns of '{table_name}': {exc}"
        ) from exc
    if not columns:
        raise IntrospectionError(table_name, f"Table '{table_name}' has no columns.")
    log.debug("'%s' has no primary key; using all %d columns as key.", table_name, len(columns))
    return columns, False


def reconcile_key_columns(
    table_name: str,
    source_keys: Sequence[str],
    destination_keys: Sequence[str],
    allow_mismatch: bool = False,
) -> tuple[list[str], str | None]:
    """
    Pick the key columns to match rows with.

    Returns:
        ``(key_columns, warning)``; *warning* is set only when a mismatch
        was tolerated.

    Raises:
        KeyMismatchError: If the key sets differ and *allow_mismatch* is False.
    """
    if set(source_keys) == set(destination_keys):
        return list(source_keys), None
    if not allow_mismatch:
        raise KeyMismatchError(table_name, source_keys, destination_keys)
    warning = (
        f"Key columns differ between source {list(source_keys)} and "
        f"destination {list(destination_keys)}; using source keys."
    )
    log.warning("'%s': %s", table_name, warning)
    return list(source_keys), warning
