"""Query layer - statement specifications and their per-dialect compiler."""

from __future__ import annotations

from counter_cache.query.compiler import StatementCompiler
from counter_cache.query.spec import Assignment, Delete, Exists, Insert, Join, Select, Statement, Update

__all__ = [
    "StatementCompiler",
    "Select",
    "Update",
    "Insert",
    "Delete",
    "Join",
    "Exists",
    "Assignment",
    "Statement",
]
