"""Connection configuration and management.

ConnectionConfig is a Pydantic model for type-safe connection config.
ConnectionManager uses the SyncAdapter protocol for pool-based connection
lifecycle.
"""

from __future__ import annotations

import importlib
import logging
from contextlib import contextmanager
from typing import Any

from pydantic import BaseModel

from counter_cache.core.exceptions import AdapterError, ConnectionError  # noqa: A004

logger = logging.getLogger(__name__)


class ConnectionConfig(BaseModel):
    """Configuration for database connections."""

    driver: str
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str
    pool_size: int = 5
    extra: dict[str, Any] = {}


# Adapter module mapping: driver name -> (module_path, adapter_class)
_ADAPTER_MAP: dict[str, tuple[str, str]] = {
    "sqlite": ("counter_cache.adapters.sqlite", "SqliteSyncAdapter"),
    "postgresql": ("counter_cache.adapters.postgresql", "PostgresqlSyncAdapter"),
    "mysql": ("counter_cache.adapters.mysql", "MysqlSyncAdapter"),
}


def _load_adapter(driver: str) -> Any:
    """Load an adapter by driver name."""
    driver_lower = driver.lower()
    if driver_lower not in _ADAPTER_MAP:
        raise AdapterError(f"Unsupported database driver: {driver}")

    module_path, cls_name = _ADAPTER_MAP[driver_lower]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load adapter for '{driver}': {e}") from e


class ConnectionManager:
    """Synchronous connection manager using the SyncAdapter protocol."""

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self._adapter = _load_adapter(config.driver)
        self._pool: Any = None

    @property
    def adapter(self) -> Any:
        return self._adapter

    def initialize_pool(self) -> Any:
        """Initialize the connection pool."""
        if self._pool is None:
            logger.debug(
                "Opening %s pool of %d connection(s)", self.config.driver, self.config.pool_size
            )
            try:
                self._pool = self._adapter.create_pool(self.config)
            except AdapterError:
                raise
            except Exception as e:
                raise ConnectionError(
                    f"Could not connect to {self.config.driver} database '{self.config.database}': {e}"
                ) from e
        return self._pool

    def acquire(self) -> Any:
        """Borrow a connection; the caller must hand it back with release()."""
        if self._pool is None:
            self.initialize_pool()
        return self._adapter.acquire_connection(self._pool)

    def release(self, connection: Any) -> None:
        self._adapter.release_connection(connection, self._pool)

    @contextmanager
    def get_connection(self):  # type: ignore[no-untyped-def]
        """Get a connection from the pool as a context manager."""
        connection = self.acquire()
        try:
            yield connection
        finally:
            self.release(connection)

    def close_pool(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            self._adapter.close_pool(self._pool)
            self._pool = None
