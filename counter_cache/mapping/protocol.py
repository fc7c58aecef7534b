"""Mapper protocol.

Executors accept any object with these two methods: map_one is applied to
fetch_one results, map_many to fetch_all results.
"""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class Mapper(Protocol[T]):
    def map_one(self, row: dict[str, Any]) -> T: ...

    def map_many(self, rows: list[dict[str, Any]]) -> list[T]: ...
