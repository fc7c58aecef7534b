"""Statement compiler.

Renders Select, Update, Insert and Delete specifications into SQL text for one dialect and
collects the named parameters of every nested subquery.
"""

from __future__ import annotations

from typing import Any

from counter_cache.core.enums import Dialect
from counter_cache.core.exceptions import ConfigurationError
from counter_cache.query.spec import Condition, Delete, Exists, Insert, Join, Select, Statement, Update


def _merge_params(target: dict[str, Any], source: dict[str, Any]) -> None:
    for key, value in source.items():
        if key in target and target[key] != value:
            raise ConfigurationError(f"Conflicting values bound to parameter '{key}'")
        target[key] = value


class StatementCompiler:
    """Compiles statement specifications for a single SQL dialect.

    ``sqlite`` and ``postgresql`` render joined updates as ``UPDATE ... FROM``;
    ``mysql`` renders them as a multi-table ``UPDATE ... JOIN``.
    """

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect

    def compile(self, spec: Select | Update | Insert | Delete) -> Statement:
        params: dict[str, Any] = {}
        if isinstance(spec, Select):
            sql = self._select(spec, params)
        elif isinstance(spec, Update):
            sql = self._update(spec, params)
        elif isinstance(spec, Insert):
            sql = self._insert(spec, params)
        elif isinstance(spec, Delete):
            sql = self._delete(spec, params)
        else:
            raise TypeError(f"Cannot compile {type(spec).__name__}")
        return Statement(sql=sql, params=params, label=spec.label)

    # --- SELECT ---

    def _select(self, spec: Select, params: dict[str, Any]) -> str:
        _merge_params(params, spec.params)
        parts = [f"SELECT {', '.join(spec.fields)}", f"FROM {self._table(spec.table, spec.alias)}"]
        parts.extend(self._join(join, params) for join in spec.joins)
        if spec.where:
            parts.append(f"WHERE {self._conditions(spec.where, params)}")
        if spec.group_by:
            parts.append(f"GROUP BY {', '.join(spec.group_by)}")
        if spec.order_by:
            parts.append(f"ORDER BY {', '.join(spec.order_by)}")
        return " ".join(parts)

    def _table(self, table: str, alias: str | None) -> str:
        return table if alias is None else f"{table} AS {alias}"

    def _source(self, source: str | Select, params: dict[str, Any]) -> str:
        if isinstance(source, Select):
            return f"({self._select(source, params)})"
        return source

    def _join(self, join: Join, params: dict[str, Any]) -> str:
        source = self._source(join.source, params)
        return f"{join.kind.value} JOIN {source} AS {join.alias} ON {' AND '.join(join.on)}"

    def _conditions(self, conditions: tuple[Condition, ...], params: dict[str, Any]) -> str:
        rendered: list[str] = []
        for condition in conditions:
            if isinstance(condition, Exists):
                rendered.append(f"EXISTS ({self._select(condition.query, params)})")
            else:
                rendered.append(condition)
        return " AND ".join(rendered)

    # --- UPDATE ---

    def _update(self, spec: Update, params: dict[str, Any]) -> str:
        if not spec.assignments:
            raise ConfigurationError(f"Update '{spec.label}' has no assignments")
        _merge_params(params, spec.params)

        # MySQL needs qualified SET targets once another table is in scope
        qualify = spec.join is not None and self.dialect is Dialect.MYSQL
        assignments = []
        for assignment in spec.assignments:
            column = f"{spec.table}.{assignment.column}" if qualify else assignment.column
            if isinstance(assignment.value, Select):
                value = f"({self._select(assignment.value, params)})"
            else:
                value = assignment.value
            assignments.append(f"{column} = {value}")
        set_clause = f"SET {', '.join(assignments)}"

        where = list(spec.where)
        if spec.join is None:
            parts = [f"UPDATE {spec.table}", set_clause]
        elif self.dialect is Dialect.MYSQL:
            parts = [f"UPDATE {spec.table}", self._join(spec.join, params), set_clause]
        else:
            source = self._source(spec.join.source, params)
            parts = [f"UPDATE {spec.table}", set_clause, f"FROM {source} AS {spec.join.alias}"]
            where = [*spec.join.on, *where]

        if where:
            parts.append(f"WHERE {self._conditions(tuple(where), params)}")
        return " ".join(parts)

    # --- INSERT / DELETE ---

    @property
    def supports_returning(self) -> bool:
        return self.dialect is not Dialect.MYSQL

    def _insert(self, spec: Insert, params: dict[str, Any]) -> str:
        if not spec.values:
            raise ConfigurationError(f"Insert '{spec.label}' has no values")
        columns = list(spec.values)
        _merge_params(params, {f"v_{column}": spec.values[column] for column in columns})
        sql = (
            f"INSERT INTO {spec.table} ({', '.join(columns)}) "
            f"VALUES ({', '.join(f':v_{column}' for column in columns)})"
        )
        if spec.returning is not None and self.supports_returning:
            sql += f" RETURNING {spec.returning}"
        return sql

    def _delete(self, spec: Delete, params: dict[str, Any]) -> str:
        _merge_params(params, spec.params)
        sql = f"DELETE FROM {spec.table}"
        if spec.where:
            sql += f" WHERE {self._conditions(spec.where, params)}"
        return sql
