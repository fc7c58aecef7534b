"""Query executor protocol and shared cursor helpers.

Engine (auto-commit per statement) and TransactionManager (one unit of work)
both satisfy QueryExecutor, so the counter cache runs unchanged inside or
outside a host transaction.
"""

from __future__ import annotations

from typing import Any, Protocol, Union, runtime_checkable

from counter_cache.core.enums import Dialect
from counter_cache.mapping.protocol import Mapper
from counter_cache.query.compiler import StatementCompiler
from counter_cache.query.spec import Delete, Insert, Select, Statement, Update

Query = Union[Statement, Select, Update, Insert, Delete]


@runtime_checkable
class QueryExecutor(Protocol):
    """Executes statements or statement specifications."""

    @property
    def dialect(self) -> Dialect: ...

    def fetch_all(self, query: Query, *, mapper: Mapper[Any] | None = None) -> Any: ...

    def fetch_one(self, query: Query, *, mapper: Mapper[Any] | None = None) -> Any: ...

    def fetch_scalar(self, query: Query) -> Any: ...

    def execute(self, query: Query) -> int: ...

    def table_columns(self, table: str) -> list[str]: ...


def prepare(query: Query, compiler: StatementCompiler) -> Statement:
    """Compile specifications; pass already compiled statements through."""
    if isinstance(query, Statement):
        return query
    return compiler.compile(query)


def rows_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor results to list of dicts.

    Handles both tuple-like rows and dict-like rows from different adapters.
    """
    if cursor.description is None:
        return []
    columns = [desc[0] for desc in cursor.description]
    rows = cursor.fetchall()
    if not rows:
        return []

    # Check if rows are already dict-like (e.g., psycopg dict_row, MySQL dict cursor)
    first_row = rows[0]
    if isinstance(first_row, dict):
        return [dict(row) for row in rows]

    # Tuple-like rows (sqlite3.Row included), zip with columns
    return [dict(zip(columns, row, strict=True)) for row in rows]


def first_value(row: Any) -> Any:
    """First column of a dict-like or tuple-like row."""
    if isinstance(row, dict):
        return next(iter(row.values()))
    return row[0]
