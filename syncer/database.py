"""
syncer/database.py
------------------
Database connection management and query execution.

Design Decisions:
    * ``DatabaseManager`` is a context manager so callers can use it with
      ``with`` statements and be guaranteed the connection is closed on exit.
    * All table/column names use backtick quoting to avoid reserved-word
      collisions in MySQL.
    * Retry logic is implemented for transient connection errors using
      linear back-off (configurable via ``max_retries`` / ``retry_delay``).
    * Queries never use Python string interpolation for values; only
      structural identifiers (table/column names) that are backtick-quoted
      are inserted into SQL strings. Parameterised execution (``%s``) is used
      for all data values.
    * The connection runs in autocommit mode. Multi-statement atomicity is
      opt-in through :meth:`DatabaseManager.transaction`.
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Generator, Sequence

import mysql.connector
from mysql.connector import MySQLConnection
from mysql.connector.cursor import MySQLCursor

from config import DatabaseConfig
from logger import get_logger

log = get_logger(__name__)


class DatabaseError(Exception):
    """Raised for database-level failures reported by this module."""


class ConnectionLostError(DatabaseError):
    """Raised when the connection to MySQL is detected as lost."""


class DatabaseConnectionError(DatabaseError):
    """Raised when a connection cannot be established (host, auth, timeout)."""


def quote_identifier(name: str) -> str:
    """Backtick-quote a MySQL identifier, escaping embedded backticks."""
    return "`" + name.replace("`", "``") + "`"


def _column_list(columns: Sequence[str]) -> str:
    return ", ".join(quote_identifier(c) for c in columns)


def _key_predicate(key_columns: Sequence[str]) -> str:
    # <=> so that NULL key values (possible when all columns are the key) match
    return " AND ".join(f"{quote_identifier(c)} <=> %s" for c in key_columns)


class DatabaseManager:
    """
    MySQL connection wrapper for one side of a sync.

    Provides:
        * Connect with retry back-off.
        * Context-manager support (``with DatabaseManager(...) as db``).
        * Helper methods for the statements issued by the sync engine.
        * Automatic rollback on uncaught exceptions inside a managed block.

    Example::

        with DatabaseManager.from_config(cfg.source, label="source") as db:
            tables = db.list_base_tables()
            pk = db.primary_key_columns("users")
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        database: str,
        charset: str = "utf8mb4",
        connect_timeout: int = 60,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        label: str = "database",
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._database = database
        self._charset = charset
        self._connect_timeout = connect_timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self.label = label

        self._conn: MySQLConnection | None = None
        self._cursor: MySQLCursor | None = None

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: DatabaseConfig,
        label: str = "database",
        max_retries: int = 3,
    ) -> "DatabaseManager":
        """Build a manager from one side of the sync configuration."""
        return cls(
            host=config.host,
            port=config.port,
            user=config.user,
            password=config.password,
            database=config.database,
            charset=config.charset,
            connect_timeout=config.connect_timeout_seconds,
            max_retries=max_retries,
            label=label,
        )

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> "DatabaseManager":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            log.warning("Unhandled exception in %s connection context: %s", self.label, exc_val)
            self._safe_rollback()
        self.close()
        return False  # Never suppress exceptions

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """
        Open the MySQL connection, retrying with back-off.

        Raises:
            DatabaseConnectionError: If connection fails after all retries.
        """
        last_error: Exception | None = None
        for attempt in range(1, self._max_retries + 1):
            try:
                log.info(
                    "Connecting to %s MySQL at %s:%s/%s (attempt %d/%d)",
                    self.label, self._host, self._port, self._database,
                    attempt, self._max_retries,
                )
                self._conn = mysql.connector.connect(
                    host=self._host,
                    port=self._port,
                    user=self._user,
                    password=self._password,
                    database=self._database,
                    charset=self._charset,
                    connect_timeout=self._connect_timeout,
                    autocommit=True,
                )
                self._cursor = self._conn.cursor(buffered=True)
                log.info("Connected to %s database %s.", self.label, self._database)
                return
            except mysql.connector.Error as exc:
                last_error = exc
                log.warning("%s connection attempt %d failed: %s", self.label.capitalize(), attempt, exc)
                if attempt < self._max_retries:
                    time.sleep(self._retry_delay * attempt)
        raise DatabaseConnectionError(
            f"Could not connect to {self.label} MySQL at {self._host}:{self._port} "
            f"after {self._max_retries} attempts: {last_error}"
        )

    def close(self) -> None:
        """Close cursor and connection. Cleanup errors are logged, never raised."""
        try:
            if self._cursor:
                self._cursor.close()
        except mysql.connector.Error as exc:
            log.debug("Error closing %s cursor: %s", self.label, exc)
        try:
            if self._conn and self._conn.is_connected():
                self._conn.close()
                log.info("%s connection closed.", self.label.capitalize())
        except mysql.connector.Error as exc:
            log.debug("Error closing %s connection: %s", self.label, exc)
        self._cursor = None
        self._conn = None

    @property
    def is_connected(self) -> bool:
        return bool(self._conn and self._conn.is_connected())

    def _ensure_connected(self) -> None:
        if not self.is_connected:
            raise ConnectionLostError(
                f"The {self.label} connection is not open. Call connect() first."
            )

    def _safe_rollback(self) -> None:
        try:
            if self._conn and self._conn.is_connected():
                self._conn.rollback()
                log.debug("%s transaction rolled back.", self.label.capitalize())
        except mysql.connector.Error as exc:
            log.warning("Rollback failed on %s: %s", self.label, exc)

    # ------------------------------------------------------------------
    # Public query helpers
    # ------------------------------------------------------------------

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> MySQLCursor:
        """
        Execute a SQL statement and return the cursor.

        Args:
            sql:    SQL statement. Use %s placeholders for values.
            params: Parameter values (optional).

        Raises:
            ConnectionLostError: If not connected.
            DatabaseError: On MySQL execution errors.
        """
        self._ensure_connected()
        assert self._cursor is not None
        try:
            self._cursor.execute(sql, tuple(params) if params is not None else None)
            return self._cursor
        except mysql.connector.Error as exc:
            log.debug("SQL error on %s: %s | SQL: %.500s", self.label, exc, sql)
            raise DatabaseError(str(exc)) from exc

    def fetchall(self) -> list[tuple]:
        """Fetch all rows from the last execute."""
        assert self._cursor is not None
        return self._cursor.fetchall() or []

    def fetchone(self) -> tuple | None:
        """Fetch one row from the last execute."""
        assert self._cursor is not None
        return self._cursor.fetchone()

    def fetch_rows(self) -> list[dict[str, Any]]:
        """Fetch all rows from the last execute as ``{column: value}`` dicts."""
        assert self._cursor is not None
        names = [d[0] for d in (self._cursor.description or ())]
        return [dict(zip(names, row)) for row in self.fetchall()]

    def commit(self) -> None:
        """
        Commit the open transaction.

        Raises:
            DatabaseError: If the server rejects the COMMIT (deadlock, lost
                           connection, lock wait timeout).
        """
        self._ensure_connected()
        assert self._conn is not None
        try:
            self._conn.commit()
        except mysql.connector.Error as exc:
            log.debug("COMMIT failed on %s: %s", self.label, exc)
            raise DatabaseError(f"Commit failed on {self.label}: {exc}") from exc

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """
        Explicit transaction scope.

        Commits on clean exit, rolls back on any exception.

        Example::

            with db.transaction():
                db.insert_row(...)
                db.update_row(...)
        """
        self._ensure_connected()
        assert self._conn is not None
        try:
            self._conn.start_transaction()
        except mysql.connector.Error as exc:
            raise DatabaseError(f"Could not start transaction: {exc}") from exc
        try:
            yield
            self.commit()
            log.debug("%s transaction committed.", self.label.capitalize())
        except Exception:
            self._safe_rollback()
            raise

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def list_base_tables(self) -> list[str]:
        """Return base table names (views excluded) in discovery order."""
        self.execute("SHOW FULL TABLES WHERE Table_type = 'BASE TABLE'")
        return [row[0] for row in self.fetchall()]

    def show_columns(self, table_name: str) -> list[dict[str, Any]]:
        """Return ``SHOW COLUMNS`` rows (Field, Type, Null, Key, Default, Extra)."""
        self.execute(f"SHOW COLUMNS FROM {quote_identifier(table_name)}")
        return self.fetch_rows()

    def primary_key_columns(self, table_name: str) -> list[str]:
        """Return the primary key column names in declared order (may be empty)."""
        self.execute(
            f"SHOW KEYS FROM {quote_identifier(table_name)} WHERE Key_name = 'PRIMARY'"
        )
        rows = self.fetch_rows()
        rows.sort(key=lambda r: int(r.get("Seq_in_index") or 0))
        return [r["Column_name"] for r in rows]

    def show_create_table(self, table_name: str) -> str:
        """Return the ``CREATE TABLE`` statement for *table_name*."""
        self.execute(f"SHOW CREATE TABLE {quote_identifier(table_name)}")
        row = self.fetchone()
        if not row:
            raise DatabaseError(f"SHOW CREATE TABLE returned nothing for '{table_name}'.")
        return row[1]

    def execute_ddl(self, sql: str) -> None:
        self.execute(sql)
        self.commit()

    def count_rows(self, table_name: str) -> int:
        """Return the row count for *table_name*."""
        self.execute(f"SELECT COUNT(*) FROM {quote_identifier(table_name)}")
        row = self.fetchone()
        return int(row[0]) if row else 0

    # ------------------------------------------------------------------
    # Row access
    # ------------------------------------------------------------------

    def select_window(
        self, table_name: str, columns: Sequence[str], limit: int, offset: int
    ) -> list[dict[str, Any]]:
        """Read one LIMIT/OFFSET window in the server's natural order."""
        self.execute(
            f"SELECT {_column_list(columns)} FROM {quote_identifier(table_name)} "
            "LIMIT %s OFFSET %s",
            (limit, offset),
        )
        return self.fetch_rows()

    def select_after(
        self,
        table_name: str,
        columns: Sequence[str],
        key_columns: Sequence[str],
        last_key: Sequence[Any] | None,
        limit: int,
    ) -> list[dict[str, Any]]:
        """Read the next keyset page ordered by *key_columns*."""
        keys = _column_list(key_columns)
        sql = f"SELECT {_column_list(columns)} FROM {quote_identifier(table_name)}"
        params: list[Any] = []
        if last_key is not None:
            placeholders = ", ".join(["%s"] * len(key_columns))
            sql += f" WHERE ({keys}) > ({placeholders})"
            params.extend(last_key)
        sql += f" ORDER BY {keys} LIMIT %s"
        params.append(limit)
        self.execute(sql, params)
        return self.fetch_rows()

    def find_row(
        self,
        table_name: str,
        columns: Sequence[str],
        key_columns: Sequence[str],
        key_values: Sequence[Any],
    ) -> dict[str, Any] | None:
        """Return the first row whose key columns equal *key_values*, or None."""
        self.execute(
            f"SELECT {_column_list(columns)} FROM {quote_identifier(table_name)} "
            f"WHERE {_key_predicate(key_columns)} LIMIT 1",
            key_values,
        )
        rows = self.fetch_rows()
        return rows[0] if rows else None

    def insert_row(
        self, table_name: str, columns: Sequence[str], values: Sequence[Any]
    ) -> None:
        placeholders = ", ".join(["%s"] * len(columns))
        self.execute(
            f"INSERT INTO {quote_identifier(table_name)} ({_column_list(columns)}) "
            f"VALUES ({placeholders})",
            values,
        )

    def update_row(
        self,
        table_name: str,
        set_columns: Sequence[str],
        set_values: Sequence[Any],
        key_columns: Sequence[str],
        key_values: Sequence[Any],
    ) -> None:
        assignments = ", ".join(f"{quote_identifier(c)} = %s" for c in set_columns)
        self.execute(
            f"UPDATE {quote_identifier(table_name)} SET {assignments} "
            f"WHERE {_key_predicate(key_columns)}",
            list(set_values) + list(key_values),
        )

    def set_foreign_key_checks(self, enabled: bool) -> None:
        self.execute(f"SET FOREIGN_KEY_CHECKS = {1 if enabled else 0}")
        log.info(
            "Foreign key checks %s on %s.",
            "enabled" if enabled else "disabled", self.label,
        )
