"""Transaction management.

Provides a context manager for executing multiple statements atomically.
Auto-commits on success, auto-rolls-back on exception. Counter cache hooks
must run inside one of these so that a failed recompute undoes the owning
write as well.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from counter_cache.core.enums import Dialect
from counter_cache.core.exceptions import MultipleRowsError, StatementError, TransactionStateError
from counter_cache.core.executor import Query, first_value, prepare, rows_to_dicts
from counter_cache.core.params import normalize_params
from counter_cache.mapping.protocol import Mapper
from counter_cache.query.compiler import StatementCompiler
from counter_cache.query.spec import Statement

logger = logging.getLogger(__name__)


class _TxState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class TransactionManager:
    """Synchronous transaction context manager."""

    def __init__(
        self,
        connection: Any,
        adapter: Any,
        compiler: StatementCompiler,
        release: Callable[[Any], None] | None = None,
    ) -> None:
        self._connection = connection
        self._adapter = adapter
        self._compiler = compiler
        self._release = release
        self._paramstyle: str = adapter.paramstyle
        self._state = _TxState.IDLE

    def __enter__(self) -> TransactionManager:
        self._state = _TxState.ACTIVE
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        try:
            if self._state == _TxState.ACTIVE:
                if exc_type is not None:
                    logger.debug("Rolling back transaction after %s", exc_type.__name__)
                    self._connection.rollback()
                    self._state = _TxState.ROLLED_BACK
                else:
                    self._connection.commit()
                    self._state = _TxState.COMMITTED
        finally:
            if self._release is not None:
                self._release(self._connection)

    @property
    def dialect(self) -> Dialect:
        return self._adapter.dialect

    @property
    def supports_returning(self) -> bool:
        """Whether an INSERT can hand back generated keys with RETURNING."""
        return self._compiler.supports_returning

    def _run(self, query: Query) -> Any:
        self._check_active()
        statement: Statement = prepare(query, self._compiler)
        sql = normalize_params(statement.sql, self._paramstyle)
        logger.debug("[%s] %s %s", statement.label, sql, statement.params)
        try:
            return self._adapter.execute(self._connection, sql, statement.params)
        except Exception as e:
            raise StatementError(statement.label, str(e)) from e

    def execute(self, query: Query) -> int:
        """Execute a write statement within this transaction."""
        return int(self._run(query).rowcount)

    def fetch_one(self, query: Query, *, mapper: Mapper[Any] | None = None) -> Any:
        """Fetch a single row within transaction context."""
        rows = rows_to_dicts(self._run(query))
        if not rows:
            return None
        if len(rows) > 1:
            raise MultipleRowsError(query.label, len(rows))
        if mapper is not None:
            return mapper.map_one(rows[0])
        return rows[0]

    def fetch_all(self, query: Query, *, mapper: Mapper[Any] | None = None) -> Any:
        """Fetch all rows within transaction context."""
        rows = rows_to_dicts(self._run(query))
        if mapper is not None:
            return mapper.map_many(rows)
        return rows

    def fetch_scalar(self, query: Query) -> Any:
        row = self._run(query).fetchone()
        if row is None:
            return None
        return first_value(row)

    def table_columns(self, table: str) -> list[str]:
        self._check_active()
        return self._adapter.table_columns(self._connection, table)

    def commit(self) -> None:
        """Explicitly commit the transaction."""
        if self._state == _TxState.ROLLED_BACK:
            raise TransactionStateError("rolled_back", "commit")
        if self._state == _TxState.COMMITTED:
            raise TransactionStateError("committed", "commit")
        self._connection.commit()
        self._state = _TxState.COMMITTED

    def rollback(self) -> None:
        """Explicitly rollback the transaction."""
        if self._state == _TxState.COMMITTED:
            raise TransactionStateError("committed", "rollback")
        self._connection.rollback()
        self._state = _TxState.ROLLED_BACK

    def _check_active(self) -> None:
        if self._state == _TxState.IDLE:
            raise TransactionStateError("idle", "execute")
        if self._state == _TxState.COMMITTED:
            raise TransactionStateError("committed", "execute")
        if self._state == _TxState.ROLLED_BACK:
            raise TransactionStateError("rolled_back", "execute")
