"""Schema introspection.

Answers the two questions the configuration resolver asks about a related
table: does a column exist, and are the nested-set columns present.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from counter_cache.core.executor import QueryExecutor

logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Column lookups for tables, cached per table for the introspector's lifetime."""

    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor
        self._columns: dict[str, frozenset[str]] = {}

    def columns(self, table: str) -> frozenset[str]:
        if table not in self._columns:
            self._columns[table] = frozenset(self._executor.table_columns(table))
            logger.debug("Columns of %s: %s", table, sorted(self._columns[table]))
        return self._columns[table]

    def has_column(self, table: str, column: str) -> bool:
        return column in self.columns(table)

    def hierarchy_columns_present(self, table: str, columns: Iterable[str]) -> bool:
        """True if every nested-set column (left, right, ...) exists on *table*."""
        return all(self.has_column(table, column) for column in columns)

    def forget(self, table: str | None = None) -> None:
        """Drop cached columns for *table*, or for every table."""
        if table is None:
            self._columns.clear()
        else:
            self._columns.pop(table, None)
