"""Project-scoped caching for oasync.

This package provides :class:`CacheManager`, which persists and validates
the per-project freshness record, and :class:`SpecContentStore`, a
:mod:`diskcache` store of previously parsed document text that lets a
validated cache hit skip the fetch entirely.
"""

from oasync.cache.manager import CACHE_FILENAME, CacheManager, local_mtime
from oasync.cache.store import CONTENT_DIRNAME, SpecContentStore

__all__ = [
    "CACHE_FILENAME",
    "CONTENT_DIRNAME",
    "CacheManager",
    "SpecContentStore",
    "local_mtime",
]
