"""Pending recount bookkeeping for one unit of work."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from counter_cache.core.executor import QueryExecutor

PendingKey = tuple[str, Any, str]  # (owner model, owner id, association)


class PendingRecount:
    """Related ids whose counters must be recomputed, per owner and association.

    The union of the "before" and "after" memberships is kept: removed ids
    must be recounted without the owner, added ids with it. Recomputing
    unchanged members as well costs a little and keeps counts exact.
    """

    def __init__(self) -> None:
        self._ids: dict[PendingKey, set[Any]] = {}

    def merge(
        self,
        owner: str,
        owner_id: Any,
        association: str,
        before: Iterable[Any] = (),
        after: Iterable[Any] = (),
    ) -> set[Any]:
        ids = self._ids.setdefault((owner, owner_id, association), set())
        ids.update(before)
        ids.update(after)
        return ids

    def pending(self, owner: str, owner_id: Any, association: str) -> frozenset[Any]:
        return frozenset(self._ids.get((owner, owner_id, association), ()))

    def consume(self, owner: str, owner_id: Any, association: str) -> set[Any]:
        """Remove and return the pending ids."""
        return self._ids.pop((owner, owner_id, association), set())

    def clear(self, owner: str | None = None, owner_id: Any = None) -> None:
        if owner is None:
            self._ids.clear()
            return
        for key in [k for k in self._ids if k[0] == owner and k[1] == owner_id]:
            del self._ids[key]

    def __bool__(self) -> bool:
        return any(self._ids.values())

    def __len__(self) -> int:
        return len(self._ids)


@dataclass
class CounterContext:
    """State threaded from the before-hooks through to the recompute.

    Create one per unit of work, bound to the executor running it (normally
    the host's open TransactionManager).
    """

    executor: QueryExecutor
    pending: PendingRecount = field(default_factory=PendingRecount)
