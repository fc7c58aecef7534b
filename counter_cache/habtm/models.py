"""Association metadata and the change record handed to lifecycle hooks."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from counter_cache.core.exceptions import ConfigurationError
from counter_cache.query.expressions import identifier

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def underscore(name: str) -> str:
    """``BlogPost`` -> ``blog_post``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


@dataclass(frozen=True)
class HierarchyColumns:
    """Nested-set columns of a hierarchical table."""

    left: str = "lft"
    right: str = "rght"
    parent: str = "parent_id"

    def __post_init__(self) -> None:
        for column in (self.left, self.right, self.parent):
            identifier(column)

    @property
    def range_columns(self) -> tuple[str, str]:
        return (self.left, self.right)


@dataclass(frozen=True)
class Association:
    """A declared many-to-many association of an owning model.

    ``foreign_key`` is the join table column pointing at the owner,
    ``association_foreign_key`` the one pointing at the related row.
    """

    name: str
    related_table: str
    join_table: str
    foreign_key: str
    association_foreign_key: str
    class_name: str | None = None
    related_primary_key: str = "id"
    display_field: str = "name"
    hierarchy: HierarchyColumns = field(default_factory=HierarchyColumns)

    def __post_init__(self) -> None:
        if self.class_name is None:
            object.__setattr__(self, "class_name", self.name)
        for name in (
            self.related_table,
            self.join_table,
            self.foreign_key,
            self.association_foreign_key,
            self.related_primary_key,
            self.display_field,
        ):
            identifier(name)


@dataclass(frozen=True)
class OwnerModel:
    """The owning side: its table and the associations it declares."""

    name: str
    table: str
    associations: tuple[Association, ...] = ()
    primary_key: str = "id"

    def __post_init__(self) -> None:
        identifier(self.table)
        identifier(self.primary_key)
        names = [association.name for association in self.associations]
        if len(names) != len(set(names)):
            raise ConfigurationError(f"Duplicate association names on {self.name}: {names}")

    @property
    def alias(self) -> str:
        """Underscored model name, the stem of the default counter fields."""
        return underscore(self.name)


@dataclass
class OwnerChange:
    """One owning record as seen by the lifecycle hooks.

    ``memberships`` holds the new related ids of every association whose
    membership is part of the write. An association missing from it did not
    change membership (only other fields of the owner did).
    """

    id: Any = None
    memberships: dict[str, set[Any]] = field(default_factory=dict)

    @classmethod
    def of(
        cls,
        owner_id: Any = None,
        memberships: Mapping[str, Iterable[Any]] | None = None,
    ) -> OwnerChange:
        return cls(id=owner_id, memberships={k: set(v) for k, v in (memberships or {}).items()})
