"""SQL fragment helpers.

Identifiers are never quoted; they are validated instead, so the generated
SQL reads the same on every dialect.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from counter_cache.core.exceptions import ConfigurationError, InvalidIdentifierError
from counter_cache.core.params import expand_list

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# "field >", "field <=", ... condition keys
_CONDITION_KEY = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*(=|!=|<>|<=|>=|<|>)?\s*$")


def identifier(name: str) -> str:
    """Return *name* unchanged if it is a plain SQL identifier."""
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise InvalidIdentifierError(str(name))
    return name


def qualified(alias: str, column: str) -> str:
    return f"{identifier(alias)}.{identifier(column)}"


def in_list(expression: str, name: str, values: Iterable[Any]) -> tuple[str, dict[str, Any]]:
    """Render ``expression IN (:name_0, ...)``; an empty list matches nothing."""
    placeholders, params = expand_list(name, values)
    if not params:
        return "1 = 0", {}
    return f"{expression} IN ({placeholders})", params


def conditions_from_mapping(
    alias: str,
    conditions: Mapping[str, Any],
    param_prefix: str,
) -> tuple[tuple[str, ...], dict[str, Any]]:
    """Translate ``{"active": 1, "hits >": 3}`` into bound SQL conditions.

    Keys are column names with an optional comparison operator suffix.
    ``None`` values compare with ``IS NULL`` (``IS NOT NULL`` for ``!=``),
    list/tuple/set values become ``IN`` lists (only with ``=``, ``!=`` or
    ``<>``).

    Returns:
        Tuple of (condition fragments, params dict).
    """
    fragments: list[str] = []
    params: dict[str, Any] = {}

    for index, (key, value) in enumerate(conditions.items()):
        match = _CONDITION_KEY.match(key) if isinstance(key, str) else None
        if match is None:
            raise InvalidIdentifierError(str(key))
        column = qualified(alias, match.group(1))
        operator = match.group(2) or "="
        name = f"{param_prefix}_{index}"

        if value is None:
            negate = operator in ("!=", "<>")
            fragments.append(f"{column} IS {'NOT ' if negate else ''}NULL")
        elif isinstance(value, (list, tuple, set, frozenset)):
            if operator not in ("=", "!=", "<>"):
                raise ConfigurationError(f"Condition '{key}' cannot compare against a list")
            fragment, list_params = in_list(column, name, value)
            if operator in ("!=", "<>"):
                fragment = f"NOT ({fragment})"
            fragments.append(fragment)
            params.update(list_params)
        else:
            fragments.append(f"{column} {operator} :{name}")
            params[name] = value

    return tuple(fragments), params
