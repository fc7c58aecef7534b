"""Query execution engine.

The Engine compiles statement specifications for the adapter's dialect,
binds parameters, executes through the adapter, and optionally applies a
mapper to results. Every write commits on its own; use transaction() to group
statements into one unit of work.
"""

from __future__ import annotations

import logging
from typing import Any

from counter_cache.core.connection import ConnectionConfig, ConnectionManager
from counter_cache.core.enums import Dialect
from counter_cache.core.exceptions import MultipleRowsError, StatementError
from counter_cache.core.executor import Query, first_value, prepare, rows_to_dicts
from counter_cache.core.params import normalize_params
from counter_cache.core.transaction import TransactionManager
from counter_cache.mapping.protocol import Mapper
from counter_cache.query.compiler import StatementCompiler
from counter_cache.query.spec import Delete, Insert, Statement, Update

logger = logging.getLogger(__name__)


class Engine:
    """Synchronous query execution engine."""

    def __init__(self, connection_manager: ConnectionManager) -> None:
        self._connection_manager = connection_manager
        self._adapter = connection_manager.adapter
        self._paramstyle = self._adapter.paramstyle
        self._compiler = StatementCompiler(self._adapter.dialect)

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> Engine:
        """Create an Engine from a ConnectionConfig.

        Args:
            config: ConnectionConfig instance

        Returns:
            Engine instance
        """
        return cls(ConnectionManager(config))

    @property
    def dialect(self) -> Dialect:
        return self._adapter.dialect

    @property
    def connection_manager(self) -> ConnectionManager:
        return self._connection_manager

    def _run(self, conn: Any, statement: Statement) -> Any:
        sql = normalize_params(statement.sql, self._paramstyle)
        logger.debug("[%s] %s %s", statement.label, sql, statement.params)
        try:
            return self._adapter.execute(conn, sql, statement.params)
        except Exception as e:
            raise StatementError(statement.label, str(e)) from e

    def fetch_one(self, query: Query, *, mapper: Mapper[Any] | None = None) -> Any:
        """Fetch a single row.

        Returns None if zero rows match.
        Raises MultipleRowsError if more than one row matches.
        """
        statement = prepare(query, self._compiler)
        with self._connection_manager.get_connection() as conn:
            rows = rows_to_dicts(self._run(conn, statement))

        if len(rows) == 0:
            return None
        if len(rows) > 1:
            raise MultipleRowsError(statement.label, len(rows))

        row = rows[0]
        if mapper is not None:
            return mapper.map_one(row)
        return row

    def fetch_all(self, query: Query, *, mapper: Mapper[Any] | None = None) -> Any:
        """Fetch all matching rows."""
        statement = prepare(query, self._compiler)
        with self._connection_manager.get_connection() as conn:
            rows = rows_to_dicts(self._run(conn, statement))

        if mapper is not None:
            return mapper.map_many(rows)
        return rows

    def fetch_scalar(self, query: Query) -> Any:
        """Fetch a single scalar value (first column of first row).

        Insert, Update and Delete specifications (``RETURNING``) are
        committed like ``execute``. Raw statements are treated as reads.
        """
        statement = prepare(query, self._compiler)
        write = isinstance(query, (Insert, Update, Delete))
        with self._connection_manager.get_connection() as conn:
            try:
                # Drain the cursor before committing
                rows = self._run(conn, statement).fetchall()
            except StatementError:
                if write:
                    conn.rollback()
                raise
            if write:
                conn.commit()
        if not rows:
            return None
        return first_value(rows[0])

    def execute(self, query: Query) -> int:
        """Execute a write statement and commit. Returns affected row count."""
        statement = prepare(query, self._compiler)
        with self._connection_manager.get_connection() as conn:
            try:
                cursor = self._run(conn, statement)
            except StatementError:
                conn.rollback()
                raise
            conn.commit()
            return int(cursor.rowcount)

    def table_columns(self, table: str) -> list[str]:
        with self._connection_manager.get_connection() as conn:
            return self._adapter.table_columns(conn, table)

    def transaction(self) -> TransactionManager:
        """Create a new transaction context manager.

        The connection is borrowed from the pool until the block exits.
        """
        return TransactionManager(
            connection=self._connection_manager.acquire(),
            adapter=self._adapter,
            compiler=self._compiler,
            release=self._connection_manager.release,
        )
