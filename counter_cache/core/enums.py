"""Database dialect and join enumerations."""

from __future__ import annotations

from enum import Enum


class Dialect(Enum):
    """SQL dialects the statement compiler can render."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


class JoinType(Enum):
    INNER = "INNER"
    LEFT = "LEFT"
