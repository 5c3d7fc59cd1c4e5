"""
Cache Domain Entities

The in-memory cache entry and its expiration rules.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .value_objects import CacheItemPriority


@dataclass
class CacheEntry:
    """
    Cache entry entity.

    Times are monotonic-clock seconds. An entry expires at its absolute
    deadline or after ``sliding_expiration`` seconds without access,
    whichever comes first. ``version`` identifies one particular ``set``
    of the key so late cleanup for a replaced entry can be told apart
    from the current one.
    """

    key: str
    value: Any
    version: int
    created_at: float
    absolute_expiration: float
    sliding_expiration: Optional[float] = None
    priority: CacheItemPriority = CacheItemPriority.NORMAL
    size: int = 1
    last_accessed_at: float = field(default=0.0)
    access_count: int = 0

    def __post_init__(self) -> None:
        if self.value is None:
            raise ValueError("Cache entry value cannot be None")
        if not self.last_accessed_at:
            self.last_accessed_at = self.created_at

    @property
    def expires_at(self) -> float:
        """Effective deadline given the current access history."""
        if self.sliding_expiration is None:
            return self.absolute_expiration
        return min(self.absolute_expiration, self.last_accessed_at + self.sliding_expiration)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def touch(self, now: float) -> None:
        """Record an access, refreshing the sliding window."""
        self.last_accessed_at = now
        self.access_count += 1
