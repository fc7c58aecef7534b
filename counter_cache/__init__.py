"""habtm-counter-cache - counter caches for many-to-many associations."""

from __future__ import annotations

from counter_cache.core.connection import ConnectionConfig, ConnectionManager
from counter_cache.core.engine import Engine
from counter_cache.core.enums import Dialect
from counter_cache.core.exceptions import (
    AdapterError,
    ConfigurationError,
    ConnectionError,  # noqa: A004
    CounterCacheError,
    ExecutionError,
    InvalidIdentifierError,
    MultipleRowsError,
    PoolError,
    StatementError,
    TransactionError,
    TransactionStateError,
    UnknownAssociationError,
)
from counter_cache.core.schema import SchemaIntrospector
from counter_cache.core.transaction import TransactionManager
from counter_cache.habtm import (
    Association,
    CounterCacheBehavior,
    CounterCacheOptions,
    CounterContext,
    HierarchyColumns,
    MenuNode,
    MenuOptions,
    OwnerChange,
    OwnerModel,
)
from counter_cache.repository.base import OwnerRepository

__all__ = [
    # Connection
    "ConnectionConfig",
    "ConnectionManager",
    # Engine
    "Engine",
    "TransactionManager",
    "SchemaIntrospector",
    # Counter cache
    "CounterCacheBehavior",
    "CounterCacheOptions",
    "CounterContext",
    "Association",
    "HierarchyColumns",
    "OwnerModel",
    "OwnerChange",
    "MenuNode",
    "MenuOptions",
    # Repository
    "OwnerRepository",
    # Enums
    "Dialect",
    # Exceptions
    "CounterCacheError",
    "ConfigurationError",
    "UnknownAssociationError",
    "InvalidIdentifierError",
    "ExecutionError",
    "StatementError",
    "MultipleRowsError",
    "TransactionError",
    "TransactionStateError",
    "AdapterError",
    "ConnectionError",
    "PoolError",
]
