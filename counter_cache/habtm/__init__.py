"""HABTM counter cache - direct and nested-set under counts on related rows."""

from __future__ import annotations

from counter_cache.habtm.behavior import CounterCacheBehavior, LifecycleHooks
from counter_cache.habtm.config import (
    AssociationConfig,
    AssociationOverride,
    ConfigurationResolver,
    CounterCacheOptions,
)
from counter_cache.habtm.menu import MenuBuilder, MenuNode, MenuOptions
from counter_cache.habtm.models import Association, HierarchyColumns, OwnerChange, OwnerModel
from counter_cache.habtm.pending import CounterContext, PendingRecount
from counter_cache.habtm.recompute import RecomputeEngine
from counter_cache.habtm.tracker import ChangeTracker

__all__ = [
    # Behaviour
    "CounterCacheBehavior",
    "LifecycleHooks",
    # Configuration
    "CounterCacheOptions",
    "AssociationOverride",
    "AssociationConfig",
    "ConfigurationResolver",
    # Models
    "Association",
    "HierarchyColumns",
    "OwnerModel",
    "OwnerChange",
    # Unit of work
    "CounterContext",
    "PendingRecount",
    "ChangeTracker",
    "RecomputeEngine",
    # Menu
    "MenuBuilder",
    "MenuNode",
    "MenuOptions",
]
