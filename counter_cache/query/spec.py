"""Statement specification data classes.

Frozen dataclasses describing SELECT, UPDATE, INSERT and DELETE statements
as table, alias, joins, conditions, group-by and projected expressions.
Expressions and conditions are SQL fragments built from validated
identifiers; values are always bound through ``params``. StatementCompiler
renders them per dialect.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from counter_cache.core.enums import JoinType


@dataclass(frozen=True)
class Join:
    """A join onto a table (``source`` is a name) or a derived table."""

    kind: JoinType
    source: str | Select
    alias: str
    on: tuple[str, ...]


@dataclass(frozen=True)
class Exists:
    """An ``EXISTS (subquery)`` condition."""

    query: Select


Condition = Union[str, Exists]


@dataclass(frozen=True)
class Select:
    table: str
    alias: str | None = None
    fields: tuple[str, ...] = ("*",)
    joins: tuple[Join, ...] = ()
    where: tuple[Condition, ...] = ()
    group_by: tuple[str, ...] = ()
    order_by: tuple[str, ...] = ()
    params: dict[str, Any] = field(default_factory=dict)
    label: str = "select"


@dataclass(frozen=True)
class Assignment:
    """``column = value``; a Select value is rendered as a scalar subquery."""

    column: str
    value: str | Select


@dataclass(frozen=True)
class Update:
    """An UPDATE, optionally joined to one table or derived table.

    The joined source is rendered as ``UPDATE ... FROM`` or
    ``UPDATE ... JOIN`` depending on the dialect; either way only target rows
    with a matching joined row are updated.
    """

    table: str
    assignments: tuple[Assignment, ...]
    join: Join | None = None
    where: tuple[Condition, ...] = ()
    params: dict[str, Any] = field(default_factory=dict)
    label: str = "update"


@dataclass(frozen=True)
class Statement:
    """Compiled SQL text with its named parameters."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)
    label: str = "<statement>"


@dataclass(frozen=True)
class Insert:
    """A single-row INSERT; ``returning`` is honoured where the dialect has RETURNING."""

    table: str
    values: dict[str, Any]
    returning: str | None = None
    label: str = "insert"


@dataclass(frozen=True)
class Delete:
    table: str
    where: tuple[Condition, ...] = ()
    params: dict[str, Any] = field(default_factory=dict)
    label: str = "delete"
