"""Lifecycle hooks that keep HABTM counter caches up to date.

A host persistence layer calls the four hooks around every write of an
owning record, in this order and inside its own transaction::

    with engine.transaction() as tx:
        context = behavior.context(tx)
        behavior.before_change(context, change)      # skipped work on insert
        ...write the owner row and its join rows...
        behavior.after_change(context, change, created=False)

Failures raised while recounting propagate out of the hook; the host's
transaction must roll the owning write back with them. Hooks return None on
success.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from counter_cache.core.exceptions import UnknownAssociationError
from counter_cache.core.executor import QueryExecutor
from counter_cache.core.schema import SchemaIntrospector
from counter_cache.habtm.config import AssociationConfig, ConfigurationResolver, CounterCacheOptions
from counter_cache.habtm.menu import MenuBuilder, MenuNode, MenuOptions
from counter_cache.habtm.models import OwnerChange, OwnerModel
from counter_cache.habtm.pending import CounterContext
from counter_cache.habtm.recompute import RecomputeEngine
from counter_cache.habtm.tracker import ChangeTracker

logger = logging.getLogger(__name__)


class LifecycleHooks(Protocol):
    def before_change(self, context: CounterContext, owner: OwnerChange) -> None: ...

    def after_change(self, context: CounterContext, owner: OwnerChange, created: bool) -> None: ...

    def before_remove(self, context: CounterContext, owner: OwnerChange) -> None: ...

    def after_remove(self, context: CounterContext, owner: OwnerChange) -> None: ...


class CounterCacheBehavior:
    """Counter cache and under counter cache for the associations of one owner model.

    Args:
        owner: The owning model and its declared associations.
        introspector: Schema lookups used to validate counter fields.
        options: Counter cache options (see CounterCacheOptions).
    """

    def __init__(
        self,
        owner: OwnerModel,
        introspector: SchemaIntrospector,
        options: CounterCacheOptions | Mapping[str, Any] | None = None,
    ) -> None:
        self.owner = owner
        self._introspector = introspector
        self._tracker = ChangeTracker()
        self._recompute = RecomputeEngine()
        self._menus = MenuBuilder(introspector)
        # Resolved once; the schema is not consulted again per write
        self.settings: dict[str, AssociationConfig] = ConfigurationResolver(introspector).resolve(
            owner, options
        )

    def config_for(self, association: str) -> AssociationConfig:
        try:
            return self.settings[association]
        except KeyError:
            raise UnknownAssociationError(self.owner.name, association) from None

    def context(self, executor: QueryExecutor) -> CounterContext:
        return CounterContext(executor=executor)

    # --- hooks ---

    def before_change(self, context: CounterContext, owner: OwnerChange) -> None:
        """Remember current memberships of an existing owner."""
        if owner.id is None:
            # Inserting: nothing can have been associated yet
            return
        self._capture_before(context, owner)

    def after_change(self, context: CounterContext, owner: OwnerChange, created: bool) -> None:
        """Add the new memberships and recount."""
        if owner.id is None:
            raise ValueError(f"after_change on {self.owner.name} needs the saved owner id")
        for name, config in self.settings.items():
            after = self._tracker.capture_after(owner.id, config, owner.memberships.get(name))
            context.pending.merge(self.owner.name, owner.id, name, after=after)
        logger.debug("%s %r %s", self.owner.name, owner.id, "created" if created else "updated")
        self._recompute.recompute(context, self.settings, owner.id)

    def before_remove(self, context: CounterContext, owner: OwnerChange) -> None:
        """Remember the memberships that the delete is about to drop."""
        self._capture_before(context, owner)

    def after_remove(self, context: CounterContext, owner: OwnerChange) -> None:
        """Recount everything the deleted owner was associated with."""
        self._recompute.recompute(context, self.settings, owner.id)

    def _capture_before(self, context: CounterContext, owner: OwnerChange) -> None:
        for name, config in self.settings.items():
            before = self._tracker.capture_before(context.executor, owner.id, config)
            context.pending.merge(self.owner.name, owner.id, name, before=before)

    # --- maintenance & read path ---

    def recount_all(self, executor: QueryExecutor, association: str) -> int:
        """Rebuild one association's counters for every related row."""
        return self._recompute.recount_all(self.context(executor), self.config_for(association))

    def build_menu(
        self,
        executor: QueryExecutor,
        association: str,
        options: MenuOptions | Mapping[str, Any] | None = None,
    ) -> list[MenuNode]:
        """Nested menu of a hierarchical association with under counts."""
        return self._menus.build(executor, self.config_for(association), options)
