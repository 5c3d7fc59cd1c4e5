"""
Cache Domain Layer

Domain entities, value objects and the service contract for the
tag-aware in-process cache.
"""

from .entities import CacheEntry
from .interfaces import CacheService
from .value_objects import (
    CacheEntryOptions,
    CacheItemPriority,
    CacheKey,
    CacheStatsResponse,
    CacheTag,
    CacheTagInfo,
    CacheTags,
    EvictionReason,
)
from .wrappers import (
    AverageProductPriceWrapper,
    CountWrapper,
    PagedResultWrapper,
    ProductPriceRangeWrapper,
)

__all__ = [
    # Entities
    "CacheEntry",
    # Interfaces
    "CacheService",
    # Value Objects
    "CacheEntryOptions",
    "CacheItemPriority",
    "CacheKey",
    "CacheStatsResponse",
    "CacheTag",
    "CacheTagInfo",
    "CacheTags",
    "EvictionReason",
    # Wrappers
    "AverageProductPriceWrapper",
    "CountWrapper",
    "PagedResultWrapper",
    "ProductPriceRangeWrapper",
]
