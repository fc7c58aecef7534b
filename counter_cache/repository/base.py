"""Owner repository.

Reference host for the counter cache: writes owning rows and their join rows
through the Engine and calls the lifecycle hooks around every write, all in
one transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from counter_cache.core.engine import Engine
from counter_cache.core.exceptions import UnknownAssociationError
from counter_cache.core.transaction import TransactionManager
from counter_cache.habtm.behavior import CounterCacheBehavior
from counter_cache.habtm.models import Association, OwnerChange
from counter_cache.query.expressions import identifier
from counter_cache.query.spec import Assignment, Delete, Insert, Statement, Update

logger = logging.getLogger(__name__)


class OwnerRepository:
    """Writes records of one owner model with their counter caches maintained.

    The owner row, its join rows and the counter recompute of each write
    commit or roll back together.

    Args:
        engine: Engine connected to the database holding every table involved.
        behavior: Counter cache behaviour of the owner model.
    """

    def __init__(self, engine: Engine, behavior: CounterCacheBehavior) -> None:
        self.engine = engine
        self.behavior = behavior
        self.owner = behavior.owner

    def association(self, name: str) -> Association:
        for association in self.owner.associations:
            if association.name == name:
                return association
        raise UnknownAssociationError(self.owner.name, name)

    def create(
        self,
        values: Mapping[str, Any],
        memberships: Mapping[str, Iterable[Any]] | None = None,
    ) -> Any:
        """Insert an owner row and its join rows. Returns the new id."""
        change = self._change(None, memberships)
        with self.engine.transaction() as tx:
            context = self.behavior.context(tx)
            self.behavior.before_change(context, change)
            change.id = self._insert(tx, values)
            self._write_memberships(tx, change)
            self.behavior.after_change(context, change, created=True)
        logger.debug("Created %s %r", self.owner.name, change.id)
        return change.id

    def update(
        self,
        owner_id: Any,
        values: Mapping[str, Any] | None = None,
        memberships: Mapping[str, Iterable[Any]] | None = None,
    ) -> None:
        """Update owner fields and/or replace the memberships given.

        Associations left out of *memberships* keep their join rows; their
        counters are still refreshed, since changed owner fields can move the
        owner in or out of a scope.
        """
        change = self._change(owner_id, memberships)
        with self.engine.transaction() as tx:
            context = self.behavior.context(tx)
            self.behavior.before_change(context, change)
            if values:
                pk = self.owner.primary_key
                tx.execute(
                    Update(
                        table=self.owner.table,
                        assignments=tuple(
                            Assignment(identifier(column), f":v_{column}") for column in values
                        ),
                        where=(f"{pk} = :owner_id",),
                        params={"owner_id": owner_id, **{f"v_{k}": v for k, v in values.items()}},
                        label=f"{self.owner.name}.update",
                    )
                )
            self._write_memberships(tx, change)
            self.behavior.after_change(context, change, created=False)

    def delete(self, owner_id: Any) -> bool:
        """Delete an owner row with all of its join rows.

        Returns False when no row had that id.
        """
        change = OwnerChange(id=owner_id)
        with self.engine.transaction() as tx:
            context = self.behavior.context(tx)
            self.behavior.before_remove(context, change)
            for association in self.owner.associations:
                self._delete_memberships(tx, association, owner_id)
            deleted = tx.execute(
                Delete(
                    table=self.owner.table,
                    where=(f"{self.owner.primary_key} = :owner_id",),
                    params={"owner_id": owner_id},
                    label=f"{self.owner.name}.delete",
                )
            )
            self.behavior.after_remove(context, change)
        return deleted > 0

    # --- helpers ---

    def _change(self, owner_id: Any, memberships: Mapping[str, Iterable[Any]] | None) -> OwnerChange:
        change = OwnerChange.of(owner_id, memberships)
        for name in change.memberships:
            self.association(name)
        return change

    def _insert(self, tx: TransactionManager, values: Mapping[str, Any]) -> Any:
        pk = self.owner.primary_key
        insert = Insert(
            table=self.owner.table,
            values={identifier(column): value for column, value in values.items()},
            returning=pk,
            label=f"{self.owner.name}.insert",
        )
        if tx.supports_returning:
            return tx.fetch_scalar(insert)
        tx.execute(insert)
        if pk in values:
            return values[pk]
        return tx.fetch_scalar(Statement("SELECT LAST_INSERT_ID()", label="last_insert_id"))

    def _write_memberships(self, tx: TransactionManager, change: OwnerChange) -> None:
        for name, related_ids in change.memberships.items():
            association = self.association(name)
            self._delete_memberships(tx, association, change.id)
            for related_id in sorted(related_ids, key=str):
                tx.execute(
                    Insert(
                        table=association.join_table,
                        values={
                            association.foreign_key: change.id,
                            association.association_foreign_key: related_id,
                        },
                        label=f"{self.owner.name}.{name}.link",
                    )
                )

    def _delete_memberships(self, tx: TransactionManager, association: Association, owner_id: Any) -> None:
        tx.execute(
            Delete(
                table=association.join_table,
                where=(f"{association.foreign_key} = :owner_id",),
                params={"owner_id": owner_id},
                label=f"{self.owner.name}.{association.name}.unlink",
            )
        )
