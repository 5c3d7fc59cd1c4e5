"""
In-Process Cache Infrastructure

Cache store, tag index and the tag-aware cache service built on them.
"""

from .cache_service import TaggedMemoryCacheService
from .exceptions import (
    CacheCapacityExceededException,
    CacheException,
    InvalidCacheEntryException,
)
from .memory_store import MemoryCacheStore
from .tag_index import TagIndex

__all__ = [
    "TaggedMemoryCacheService",
    "MemoryCacheStore",
    "TagIndex",
    "CacheException",
    "CacheCapacityExceededException",
    "InvalidCacheEntryException",
]
