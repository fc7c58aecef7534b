"""Threaded mapper.

Assembles flat rows into a parent-grouped tree in a single O(n) pass using
an identity map, the way a "threaded" find nests rows under their parents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ThreadedNode:
    row: dict[str, Any]
    children: list[ThreadedNode] = field(default_factory=list)


class ThreadedMapper:
    """Nests rows under the row whose key equals their parent key.

    Row order is kept among siblings, so rows fetched in nested-set (left)
    order come out in tree order. Rows whose parent is not in the result
    set become roots.
    """

    def __init__(self, key: str = "id", parent_key: str = "parent_id") -> None:
        self._key = key
        self._parent_key = parent_key

    def map_one(self, row: dict[str, Any]) -> ThreadedNode:
        return ThreadedNode(row=row)

    def map_many(self, rows: list[dict[str, Any]]) -> list[ThreadedNode]:
        identity: dict[Any, ThreadedNode] = {}
        order: list[Any] = []

        for row in rows:
            key = row.get(self._key)
            # Skip NULL keys and duplicates
            if key is None or key in identity:
                continue
            identity[key] = ThreadedNode(row=row)
            order.append(key)

        roots: list[ThreadedNode] = []
        for key in order:
            node = identity[key]
            parent = node.row.get(self._parent_key)
            if parent is not None and parent != key and parent in identity:
                identity[parent].children.append(node)
            else:
                roots.append(node)
        return roots
