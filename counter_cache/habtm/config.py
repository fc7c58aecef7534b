"""Counter cache options and their resolution into per-association settings.

Options are layered: computed defaults, then the global options, then the
options of one association (looked up by association name, falling back to
the related class name). Only keys that were explicitly given override the
layer below; an explicit ``None`` disables that counter.

Example::

    CounterCacheOptions(
        scope={"published": True},
        associations={
            "Tag": "weight",                                # direct field shorthand
            "Category": {"under_count_field": "under_posts"},
            "Author": False,                                # never counted
        },
    )
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from counter_cache.core.schema import SchemaIntrospector
from counter_cache.habtm.models import Association, HierarchyColumns, OwnerModel
from counter_cache.query.expressions import conditions_from_mapping, identifier

logger = logging.getLogger(__name__)

_SETTING_KEYS = frozenset({"direct_count_field", "scope", "under_count_field"})


class AssociationOverride(BaseModel):
    """Settings for one association, or for all of them at the top level."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    direct_count_field: str | None = None
    scope: dict[str, Any] | None = None
    under_count_field: str | None = None

    def explicit(self) -> dict[str, Any]:
        """Only the settings that were actually provided."""
        return self.model_dump(include=set(_SETTING_KEYS), exclude_unset=True)


class CounterCacheOptions(AssociationOverride):
    """Global settings plus per-association overrides.

    ``associations`` values may be a field name (shorthand for
    ``direct_count_field``), an AssociationOverride (or its dict form),
    ``True`` for the global settings, or any falsy value (``False``, ``None``,
    ``{}``, ``""``) to skip the association.
    """

    associations: dict[str, AssociationOverride | bool] = {}

    @field_validator("associations", mode="before")
    @classmethod
    def _expand_shorthand(cls, value: Any) -> Any:
        if not isinstance(value, Mapping):
            return value
        expanded: dict[str, Any] = {}
        for key, override in value.items():
            if not override:
                # None, {}, "" and 0 disable the association like False does
                expanded[key] = False
            elif isinstance(override, str):
                expanded[key] = {"direct_count_field": override}
            else:
                expanded[key] = override
        return expanded

    def override_for(self, association: Association) -> AssociationOverride | bool:
        """Association-name key first, then the related class name."""
        if association.name in self.associations:
            return self.associations[association.name]
        if association.class_name in self.associations:
            return self.associations[association.class_name]
        return True


@dataclass(frozen=True)
class AssociationConfig:
    """Resolved, schema-validated counter settings of one association."""

    owner: OwnerModel
    association: Association
    direct_count_field: str | None
    under_count_field: str | None
    scope: Mapping[str, Any] | None = None

    @property
    def name(self) -> str:
        return self.association.name

    @property
    def join_table(self) -> str:
        return self.association.join_table

    @property
    def owner_key(self) -> str:
        return self.association.foreign_key

    @property
    def related_key(self) -> str:
        return self.association.association_foreign_key

    @property
    def related_table(self) -> str:
        return self.association.related_table

    @property
    def related_primary_key(self) -> str:
        return self.association.related_primary_key

    @property
    def hierarchy(self) -> HierarchyColumns:
        return self.association.hierarchy

    @property
    def enabled(self) -> bool:
        return bool(self.direct_count_field or self.under_count_field)


def default_settings(owner: OwnerModel) -> dict[str, Any]:
    """``Post`` counts into ``post_count`` and ``under_post_count``."""
    direct = f"{owner.alias}_count"
    return {"direct_count_field": direct, "scope": None, "under_count_field": f"under_{direct}"}


class ConfigurationResolver:
    """Merges options and validates them against the related schemas.

    Fields missing from the related table are disabled rather than reported
    as errors; an association left without any counter is dropped.
    """

    def __init__(self, introspector: SchemaIntrospector) -> None:
        self._introspector = introspector

    def resolve(
        self,
        owner: OwnerModel,
        options: CounterCacheOptions | Mapping[str, Any] | None = None,
    ) -> dict[str, AssociationConfig]:
        if options is None:
            options = CounterCacheOptions()
        elif not isinstance(options, CounterCacheOptions):
            options = CounterCacheOptions.model_validate(options)

        global_settings = {**default_settings(owner), **options.explicit()}
        resolved: dict[str, AssociationConfig] = {}

        for association in owner.associations:
            override = options.override_for(association)
            if override is False:
                logger.debug("%s.%s: counter cache disabled by options", owner.name, association.name)
                continue
            settings = dict(global_settings)
            if isinstance(override, AssociationOverride):
                settings.update(override.explicit())

            config = self._validate(owner, association, settings)
            if not config.enabled:
                logger.debug(
                    "%s.%s: no counter fields on %s, association skipped",
                    owner.name,
                    association.name,
                    association.related_table,
                )
                continue
            logger.debug(
                "%s.%s: direct=%s under=%s scope=%s",
                owner.name,
                association.name,
                config.direct_count_field,
                config.under_count_field,
                config.scope,
            )
            resolved[association.name] = config

        return resolved

    def _validate(
        self,
        owner: OwnerModel,
        association: Association,
        settings: dict[str, Any],
    ) -> AssociationConfig:
        table = association.related_table
        direct = settings.get("direct_count_field")
        under = settings.get("under_count_field")
        scope = settings.get("scope") or None

        if direct is not None:
            identifier(direct)
            if not self._introspector.has_column(table, direct):
                logger.debug("%s has no column %s, direct count disabled", table, direct)
                direct = None

        if under is not None:
            identifier(under)
            if not self._introspector.hierarchy_columns_present(
                table, association.hierarchy.range_columns
            ):
                logger.debug("%s is not a nested set, under count disabled", table)
                under = None
            elif not self._introspector.has_column(table, under):
                logger.debug("%s has no column %s, under count disabled", table, under)
                under = None

        if scope is not None:
            # Fail on malformed scope keys now rather than at first recompute
            conditions_from_mapping(owner.table, scope, "scope")

        return AssociationConfig(
            owner=owner,
            association=association,
            direct_count_field=direct,
            under_count_field=under,
            scope=scope,
        )
