"""
Cache Service Interface

Abstract contract for the tag-aware cache used by cached repositories,
the unit of work and cache management.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional, Type, Union

from .value_objects import CacheItemPriority, CacheKey, CacheStatsResponse, CacheTag, Seconds

KeyLike = Union[str, CacheKey]
TagLike = Union[str, CacheTag]


class CacheService(ABC):
    """
    Abstract tag-aware cache.

    Implementations must never let a cache failure escape ``get``/``set``
    and the invalidation methods: failures are logged and degrade to a
    miss or a no-op. ``get_stats`` is a management call and may raise.
    """

    @abstractmethod
    async def get(self, key: KeyLike, expected_type: Optional[Type] = None) -> Optional[Any]:
        """Return the cached value, or None on miss, expiry or type mismatch."""
        pass

    @abstractmethod
    async def set(self, key: KeyLike, value: Any, expiration: Optional[Seconds] = None) -> None:
        """Cache ``value`` without tags."""
        pass

    @abstractmethod
    async def set_with_tags(
        self,
        key: KeyLike,
        value: Any,
        tags: Iterable[TagLike],
        expiration: Optional[Seconds] = None,
        sliding_expiration: Optional[Seconds] = None,
        priority: CacheItemPriority = CacheItemPriority.NORMAL,
    ) -> None:
        """Cache ``value`` and replace the key's tag associations with ``tags``."""
        pass

    @abstractmethod
    async def remove(self, key: KeyLike) -> None:
        """Remove an entry and its tag associations; missing keys are ignored."""
        pass

    @abstractmethod
    async def remove_by_pattern(self, pattern: str) -> int:
        """Remove every live key containing ``pattern`` (case-insensitive)."""
        pass

    @abstractmethod
    async def invalidate_tag(self, tag: TagLike) -> int:
        """Remove every entry registered under ``tag``."""
        pass

    @abstractmethod
    async def invalidate_tags(self, tags: Iterable[TagLike]) -> int:
        """Remove every entry registered under any of ``tags`` in one pass."""
        pass

    @abstractmethod
    async def invalidate_all(self) -> None:
        """Drop every entry and every tag association."""
        pass

    @abstractmethod
    async def get_stats(self) -> CacheStatsResponse:
        """Return key count, memory estimate, hit/miss rates and per-tag counts."""
        pass
