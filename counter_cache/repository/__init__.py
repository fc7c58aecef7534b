"""Repository layer - owner writes with counter caches maintained."""

from __future__ import annotations

from counter_cache.repository.base import OwnerRepository

__all__ = [
    "OwnerRepository",
]
