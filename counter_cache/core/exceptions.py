"""Counter cache exception hierarchy.

All exceptions are counter-cache specific. Raw driver exceptions are never
exposed to callers; they are chained as ``__cause__`` instead.
"""

from __future__ import annotations


class CounterCacheError(Exception):
    """Base exception for all counter cache errors."""


# --- Configuration ---


class ConfigurationError(CounterCacheError):
    """Raised for invalid counter cache options or association lookups."""


class UnknownAssociationError(ConfigurationError):
    """Raised when an association is not active for an owning model."""

    def __init__(self, owner: str, association: str) -> None:
        self.owner = owner
        self.association = association
        super().__init__(f"'{owner}' has no active counter cache association '{association}'")


class InvalidIdentifierError(ConfigurationError):
    """Raised when a table or column name is not a plain SQL identifier."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Invalid SQL identifier: {identifier!r}")


# --- Execution ---


class ExecutionError(CounterCacheError):
    """Base for statement execution errors."""


class StatementError(ExecutionError):
    """Raised when the datastore rejects or fails a statement."""

    def __init__(self, label: str, detail: str) -> None:
        self.label = label
        self.detail = detail
        super().__init__(f"Statement '{label}' failed: {detail}")


class MultipleRowsError(ExecutionError):
    """Raised when fetch_one encounters more than one row."""

    def __init__(self, label: str, row_count: int) -> None:
        self.label = label
        self.row_count = row_count
        super().__init__(f"fetch_one for '{label}' returned {row_count} rows (expected 0 or 1)")


# --- Transaction ---


class TransactionError(CounterCacheError):
    """Base for transaction errors."""


class TransactionStateError(TransactionError):
    """Raised on invalid transaction state transitions."""

    def __init__(self, current_state: str, attempted_action: str) -> None:
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(f"Cannot {attempted_action} transaction in state '{current_state}'")


# --- Adapter ---


class AdapterError(CounterCacheError):
    """Base for adapter errors."""


class ConnectionError(AdapterError):  # noqa: A001
    """Raised on connection failures."""


class PoolError(AdapterError):
    """Raised on connection pool failures."""
