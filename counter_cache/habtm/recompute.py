"""Set-based recomputation of direct counts and nested-set under counts.

For one association a single UPDATE writes both counters of every affected
related row:

* the direct count is an inline scalar subquery counting join rows of the
  row, optionally joined to the owner table to apply the scope;
* the under count comes from a grouped derived table ``x`` that, for each
  node ``n``, counts the DISTINCT owners linked to ``n`` or to any node ``m``
  inside ``n``'s nested-set range. Counting owner ids instead of join rows
  stops an owner linked to two descendants of ``n`` from counting twice.

With the under count enabled the targets are the pending ids and all of
their ancestors, whose under counts depend on the pending rows.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from typing import Any

from counter_cache.core.enums import JoinType
from counter_cache.habtm.config import AssociationConfig
from counter_cache.habtm.pending import CounterContext
from counter_cache.query.expressions import conditions_from_mapping, in_list
from counter_cache.query.spec import Assignment, Exists, Join, Select, Update

logger = logging.getLogger(__name__)

# Aliases used inside the generated statements
_JOIN = "j"
_OWNER = "o"
_NODE = "n"
_MEMBER = "m"
_PENDING = "p"
_UNDER = "x"


def _scope(config: AssociationConfig) -> tuple[tuple[str, ...], dict[str, Any]]:
    if not config.scope:
        return (), {}
    return conditions_from_mapping(_OWNER, config.scope, "scope")


def _owner_on(config: AssociationConfig) -> str:
    return f"{_OWNER}.{config.owner.primary_key} = {_JOIN}.{config.owner_key}"


def direct_count_query(config: AssociationConfig) -> Select:
    """Scalar subquery: join rows (in scope) of the row being updated."""
    scope_conditions, scope_params = _scope(config)
    joins: tuple[Join, ...] = ()
    if scope_conditions:
        joins = (Join(JoinType.INNER, config.owner.table, _OWNER, (_owner_on(config),)),)
    return Select(
        table=config.join_table,
        alias=_JOIN,
        fields=("COUNT(*)",),
        joins=joins,
        where=(
            f"{_JOIN}.{config.related_key} = {config.related_table}.{config.related_primary_key}",
            *scope_conditions,
        ),
        params=scope_params,
        label=f"{config.name}.direct_count",
    )


def under_count_query(config: AssociationConfig, ids: Collection[Any] | None) -> Select:
    """Derived table of ``(node_id, under_count)``.

    Every targeted node yields a row, with 0 when nothing is linked in its
    subtree, because all joins below the node are LEFT joins. Out-of-scope
    owners are filtered in the ON clause for the same reason.
    """
    pk = config.related_primary_key
    left, right = config.hierarchy.range_columns
    scope_conditions, scope_params = _scope(config)

    joins = [
        Join(
            JoinType.LEFT,
            config.related_table,
            _MEMBER,
            (f"{_NODE}.{left} <= {_MEMBER}.{left}", f"{_NODE}.{right} >= {_MEMBER}.{right}"),
        ),
        Join(
            JoinType.LEFT,
            config.join_table,
            _JOIN,
            (f"{_JOIN}.{config.related_key} = {_MEMBER}.{pk}",),
        ),
    ]
    counted = f"{_JOIN}.{config.owner_key}"
    if scope_conditions:
        joins.append(
            Join(JoinType.LEFT, config.owner.table, _OWNER, (_owner_on(config), *scope_conditions))
        )
        counted = f"{_OWNER}.{config.owner.primary_key}"

    where: tuple[Any, ...] = ()
    if ids is not None:
        pending_condition, pending_params = in_list(f"{_PENDING}.{pk}", "pending", ids)
        where = (
            Exists(
                Select(
                    table=config.related_table,
                    alias=_PENDING,
                    fields=("1",),
                    where=(
                        pending_condition,
                        f"{_NODE}.{left} <= {_PENDING}.{left}",
                        f"{_NODE}.{right} >= {_PENDING}.{right}",
                    ),
                    params=pending_params,
                )
            ),
        )

    return Select(
        table=config.related_table,
        alias=_NODE,
        fields=(f"{_NODE}.{pk} AS node_id", f"COUNT(DISTINCT {counted}) AS under_count"),
        joins=tuple(joins),
        where=where,
        group_by=(f"{_NODE}.{pk}",),
        params=scope_params,
        label=f"{config.name}.under_count",
    )


def counter_update(config: AssociationConfig, ids: Collection[Any] | None) -> Update:
    """The combined counter UPDATE for *ids*, or for every row when None."""
    table = config.related_table
    pk = config.related_primary_key

    assignments: list[Assignment] = []
    if config.direct_count_field:
        assignments.append(Assignment(config.direct_count_field, direct_count_query(config)))

    if config.under_count_field:
        assignments.append(Assignment(config.under_count_field, f"{_UNDER}.under_count"))
        return Update(
            table=table,
            assignments=tuple(assignments),
            join=Join(
                JoinType.INNER,
                under_count_query(config, ids),
                _UNDER,
                (f"{table}.{pk} = {_UNDER}.node_id",),
            ),
            label=f"{config.owner.name}.{config.name}.recount",
        )

    where: tuple[str, ...] = ()
    params: dict[str, Any] = {}
    if ids is not None:
        condition, params = in_list(f"{table}.{pk}", "pending", ids)
        where = (condition,)
    return Update(
        table=table,
        assignments=tuple(assignments),
        where=where,
        params=params,
        label=f"{config.owner.name}.{config.name}.recount",
    )


class RecomputeEngine:
    """Consumes pending ids and rewrites the affected counters."""

    def recompute(
        self,
        context: CounterContext,
        configs: Mapping[str, AssociationConfig],
        owner_id: Any,
    ) -> dict[str, int]:
        """Recount every association of *owner_id* with pending ids.

        Returns the number of related rows updated per association. Errors
        propagate unchanged; the pending ids of a failed association are
        left in the context.
        """
        updated: dict[str, int] = {}
        for name, config in configs.items():
            ids = context.pending.pending(config.owner.name, owner_id, name)
            if not ids:
                continue
            updated[name] = context.executor.execute(counter_update(config, ids))
            context.pending.consume(config.owner.name, owner_id, name)
            logger.info(
                "%s %r: recounted %s for %d pending id(s), %d row(s) updated",
                config.owner.name,
                owner_id,
                name,
                len(ids),
                updated[name],
            )
        return updated

    def recount_all(self, context: CounterContext, config: AssociationConfig) -> int:
        """Recount every row of the related table, e.g. after a bulk import."""
        affected = context.executor.execute(counter_update(config, None))
        logger.info("%s: recounted all %s rows", config.name, config.related_table)
        return affected
