"""Mapping layer - transform row dicts into nested structures."""

from __future__ import annotations

from counter_cache.mapping.protocol import Mapper
from counter_cache.mapping.threaded import ThreadedMapper, ThreadedNode

__all__ = [
    "Mapper",
    "ThreadedMapper",
    "ThreadedNode",
]
