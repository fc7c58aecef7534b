"""Nested menu of a hierarchical association, annotated with under counts.

Each item reads ``"<display field> (<under count>)"``; only nodes with
something linked in or under them are listed. Example result::

    [
        MenuNode(
            text="Category 1 (10)",
            id=1,
            url_params={"slug": "cat-1"},
            parent_selected=True,
            children=[
                MenuNode(text="Category 1.1 (5)", id=2, url_params={"slug": "cat-1-1"},
                         selected=True, parent_selected=True),
            ],
        ),
    ]
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from counter_cache.core.exceptions import ConfigurationError
from counter_cache.core.executor import QueryExecutor
from counter_cache.core.schema import SchemaIntrospector
from counter_cache.habtm.config import AssociationConfig
from counter_cache.mapping.threaded import ThreadedMapper, ThreadedNode
from counter_cache.query.expressions import conditions_from_mapping, identifier
from counter_cache.query.spec import Select

logger = logging.getLogger(__name__)


@dataclass
class MenuNode:
    text: str
    id: Any
    url_params: dict[str, Any] = field(default_factory=dict)
    selected: bool = False
    parent_selected: bool = False
    children: list[MenuNode] = field(default_factory=list)


class MenuOptions(BaseModel):
    """Menu options.

    Attributes:
        url: Field name -> URL parameter name for each item's ``url_params``.
            Defaults to ``slug`` when the related table has one, else the
            primary key.
        selected: ``(field, value)`` of the active item; the field must be
            one of the ``url`` fields. A single-entry dict is accepted too.
        conditions: Extra conditions on the related table.
    """

    model_config = ConfigDict(frozen=True)

    url: dict[str, str] | None = None
    selected: tuple[str, Any] | None = None
    conditions: dict[str, Any] = {}

    @field_validator("url")
    @classmethod
    def _url_not_empty(cls, value: dict[str, str] | None) -> dict[str, str] | None:
        if value is not None and not value:
            raise ValueError("url must map at least one field")
        return value

    @field_validator("selected", mode="before")
    @classmethod
    def _selected_pair(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            if len(value) != 1:
                raise ValueError("selected must name exactly one field")
            return next(iter(value.items()))
        return value


def _matches(value: Any, expected: Any) -> bool:
    # Selections usually arrive as URL strings
    return value == expected or (value is not None and str(value) == str(expected))


def format_menu(
    roots: list[ThreadedNode],
    config: AssociationConfig,
    url: Mapping[str, str],
    selected: tuple[str, Any] | None = None,
) -> list[MenuNode]:
    """Turn threaded rows into MenuNodes.

    Explicit post-order traversal: a node's ``parent_selected`` is settled
    only after all of its children, so the flag climbs from the selected
    item to every ancestor without recursion.
    """
    display = config.association.display_field
    under = config.under_count_field
    key = config.related_primary_key

    menu: list[MenuNode] = []
    # (threaded node, sibling list to append to, finished MenuNode or None)
    stack: list[tuple[ThreadedNode, list[MenuNode], MenuNode | None]] = [
        (root, menu, None) for root in reversed(roots)
    ]
    while stack:
        node, siblings, item = stack.pop()
        if item is not None:
            item.parent_selected = item.selected or any(
                child.parent_selected for child in item.children
            )
            continue

        row = node.row
        item = MenuNode(text=f"{row[display]} ({row[under]})", id=row[key])
        for field_name, param in url.items():
            item.url_params[param] = row[field_name]
            if selected is not None and field_name == selected[0]:
                if _matches(row[field_name], selected[1]):
                    item.selected = True
        siblings.append(item)

        stack.append((node, siblings, item))
        stack.extend((child, item.children, None) for child in reversed(node.children))
    return menu


class MenuBuilder:
    def __init__(self, introspector: SchemaIntrospector) -> None:
        self._introspector = introspector

    def default_url(self, config: AssociationConfig) -> dict[str, str]:
        if self._introspector.has_column(config.related_table, "slug"):
            return {"slug": "slug"}
        return {config.related_primary_key: config.related_primary_key}

    def query(self, config: AssociationConfig, options: MenuOptions, url: Mapping[str, str]) -> Select:
        under = config.under_count_field
        if not under:
            raise ConfigurationError(
                f"{config.owner.name}.{config.name} has no under count field; cannot build a menu"
            )
        hierarchy = config.hierarchy
        fields = [
            config.related_primary_key,
            hierarchy.parent,
            config.association.display_field,
            under,
            *(identifier(name) for name in url),
        ]
        extra, params = conditions_from_mapping(config.related_table, options.conditions, "menu")
        return Select(
            table=config.related_table,
            fields=tuple(dict.fromkeys(fields)),
            where=(f"{under} > :min_under_count", *extra),
            order_by=(hierarchy.left,),
            params={"min_under_count": 0, **params},
            label=f"{config.name}.menu",
        )

    def build(
        self,
        executor: QueryExecutor,
        config: AssociationConfig,
        options: MenuOptions | Mapping[str, Any] | None = None,
    ) -> list[MenuNode]:
        if options is None:
            options = MenuOptions()
        elif not isinstance(options, MenuOptions):
            options = MenuOptions.model_validate(options)

        url = options.url if options.url is not None else self.default_url(config)
        if options.selected is not None and options.selected[0] not in url:
            logger.debug("Selected field %s is not a url field; nothing will be selected", options.selected[0])

        mapper = ThreadedMapper(config.related_primary_key, config.hierarchy.parent)
        roots = executor.fetch_all(self.query(config, options, url), mapper=mapper)
        return format_menu(roots, config, url, options.selected)
