"""MySQL adapter using mysql-connector-python."""

from __future__ import annotations

from typing import Any

from counter_cache.core.connection import ConnectionConfig
from counter_cache.core.enums import Dialect
from counter_cache.core.exceptions import PoolError

_COLUMNS_SQL = (
    "SELECT column_name AS column_name FROM information_schema.columns "
    "WHERE table_schema = DATABASE() AND table_name = %(table)s "
    "ORDER BY ordinal_position"
)


class MysqlSyncAdapter:
    """Synchronous MySQL adapter using mysql-connector-python."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    @property
    def dialect(self) -> Dialect:
        return Dialect.MYSQL

    def create_pool(self, config: ConnectionConfig) -> list[Any]:
        """Create a pool (list of connections) for MySQL."""
        import mysql.connector

        pool: list[Any] = []
        for _ in range(config.pool_size):
            conn = mysql.connector.connect(
                host=config.host,
                port=config.port,
                user=config.user,
                password=config.password,
                database=config.database,
                **config.extra,
            )
            pool.append(conn)
        return pool

    def acquire_connection(self, pool: list[Any]) -> Any:
        """Acquire a connection from the pool."""
        if not pool:
            raise PoolError("No connections available in pool")
        return pool.pop()

    def release_connection(self, connection: Any, pool: list[Any]) -> None:
        """Release a connection back to the pool."""
        pool.append(connection)

    def close_pool(self, pool: list[Any]) -> None:
        """Close all connections in the pool."""
        for conn in pool:
            conn.close()
        pool.clear()

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute SQL and return a cursor with dictionary results."""
        cursor = connection.cursor(dictionary=True)
        cursor.execute(sql, params or {})
        return cursor

    def table_columns(self, connection: Any, table: str) -> list[str]:
        cursor = self.execute(connection, _COLUMNS_SQL, {"table": table})
        return [row["column_name"] for row in cursor.fetchall()]
