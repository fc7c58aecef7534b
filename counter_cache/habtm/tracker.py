"""Capture of association membership around a write."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from counter_cache.core.executor import QueryExecutor
from counter_cache.habtm.config import AssociationConfig
from counter_cache.query.spec import Select

logger = logging.getLogger(__name__)


def membership_query(config: AssociationConfig, owner_id: Any) -> Select:
    return Select(
        table=config.join_table,
        fields=(f"DISTINCT {config.related_key} AS related_id",),
        where=(f"{config.owner_key} = :owner_id",),
        params={"owner_id": owner_id},
        label=f"{config.owner.name}.{config.name}.membership",
    )


class ChangeTracker:
    def capture_before(
        self,
        executor: QueryExecutor,
        owner_id: Any,
        config: AssociationConfig,
    ) -> set[Any]:
        """Related ids joined to the owner before the write."""
        rows = executor.fetch_all(membership_query(config, owner_id))
        ids = {row["related_id"] for row in rows}
        logger.debug("%s %r: %s before = %s", config.owner.name, owner_id, config.name, ids)
        return ids

    def capture_after(
        self,
        owner_id: Any,
        config: AssociationConfig,
        new_ids: Iterable[Any] | None,
    ) -> set[Any]:
        """Related ids joined to the owner after the write.

        ``None`` means the membership was not part of the write; nothing is
        added and the captured before-ids still get recounted, since the
        owner's scope may have changed.
        """
        if new_ids is None:
            return set()
        ids = set(new_ids)
        logger.debug("%s %r: %s after = %s", config.owner.name, owner_id, config.name, ids)
        return ids
