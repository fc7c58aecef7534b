"""SQL parameter normalization.

Compiled statements always use `:name` parameters. This module converts them
to the driver-specific format and expands list values into numbered
placeholders for ``IN (...)`` lists.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache
from typing import Any

# Matches :name but not ::typecast and not inside words
# Negative lookbehind for : (handles ::), \w (handles mid-word colons)
_PARAM_PATTERN = re.compile(r"(?<![:\w]):([a-zA-Z_]\w*)")

# Matches single-quoted string literals (with escaped quotes handled)
_STRING_LITERAL_PATTERN = re.compile(r"'(?:[^'\\]|\\.)*'")


def normalize_params(sql: str, paramstyle: str) -> str:
    """Convert :name parameters to the target param style.

    Args:
        sql: SQL string with :name parameters.
        paramstyle: Target style - 'named' (no conversion) or 'pyformat' (%(name)s).

    Returns:
        SQL with parameters converted to the target style.
    """
    if paramstyle == "named":
        return sql
    return _convert_to_pyformat(sql)


@lru_cache(maxsize=256)
def _convert_to_pyformat(sql: str) -> str:
    """Convert :name params to %(name)s, preserving string literals."""
    parts: list[str] = []
    last_end = 0

    for match in _STRING_LITERAL_PATTERN.finditer(sql):
        start, end = match.span()
        if start > last_end:
            parts.append(_PARAM_PATTERN.sub(r"%(\1)s", sql[last_end:start]))
        parts.append(match.group())
        last_end = end

    if last_end < len(sql):
        parts.append(_PARAM_PATTERN.sub(r"%(\1)s", sql[last_end:]))

    return "".join(parts)


def expand_list(name: str, values: Iterable[Any]) -> tuple[str, dict[str, Any]]:
    """Expand *values* into ``:name_0, :name_1, ...`` placeholders.

    Values are ordered by their text form so identical sets always bind in
    the same order, whatever their type.

    Returns:
        Tuple of (placeholder list, params dict).
    """
    items = sorted(values, key=str)
    params = {f"{name}_{i}": value for i, value in enumerate(items)}
    placeholders = ", ".join(f":{key}" for key in params)
    return placeholders, params
