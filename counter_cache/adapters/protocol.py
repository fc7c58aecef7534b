"""Database adapter protocol.

Every adapter module MUST implement this protocol so the engine, the
statement compiler and the schema introspector stay driver agnostic.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from counter_cache.core.connection import ConnectionConfig
from counter_cache.core.enums import Dialect


@runtime_checkable
class SyncAdapter(Protocol):
    """Synchronous database adapter protocol."""

    @property
    def paramstyle(self) -> str:
        """Parameter binding style: 'named' (:name) or 'pyformat' (%(name)s)."""
        ...

    @property
    def dialect(self) -> Dialect:
        """SQL dialect used to render statements for this driver."""
        ...

    def create_pool(self, config: ConnectionConfig) -> Any:
        """Create a connection pool."""
        ...

    def acquire_connection(self, pool: Any) -> Any:
        """Acquire a connection from the pool."""
        ...

    def release_connection(self, connection: Any, pool: Any) -> None:
        """Release a connection back to the pool."""
        ...

    def close_pool(self, pool: Any) -> None:
        """Close the pool and release all connections."""
        ...

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute SQL and return a cursor-like object."""
        ...

    def table_columns(self, connection: Any, table: str) -> list[str]:
        """Return the column names of *table*, empty if it does not exist."""
        ...
