"""
In-Memory Cache Store

Bounded key/value store with absolute and sliding expiration, priority
aware compaction and eviction listeners.

Features:
- Least-recently-used ordering inside each priority class
- Lazy expiry on access plus a periodic scan driven by cache traffic
- Listeners run after the store lock is released, once per removed entry
"""

import itertools
import math
import threading
import time
from collections import OrderedDict
from typing import Callable, List, Optional, Tuple

import structlog

from ...domain.cache.entities import CacheEntry
from ...domain.cache.value_objects import CacheEntryOptions, CacheItemPriority, EvictionReason
from .exceptions import CacheCapacityExceededException

logger = structlog.get_logger()

EvictionListener = Callable[[CacheEntry, EvictionReason], None]
Clock = Callable[[], float]

_COMPACTION_ORDER = (
    CacheItemPriority.LOW,
    CacheItemPriority.NORMAL,
    CacheItemPriority.HIGH,
)


class MemoryCacheStore:
    """
    Thread-safe bounded cache store.

    The entry map is also the authoritative key registry: ``keys()``
    enumerates exactly the live entries.
    """

    def __init__(
        self,
        size_limit: int = 1000,
        compaction_percentage: float = 0.25,
        expiration_scan_frequency: float = 1.0,
        clock: Clock = time.monotonic,
    ):
        if size_limit < 1:
            raise ValueError("size_limit must be at least 1")
        if not 0.0 < compaction_percentage <= 1.0:
            raise ValueError("compaction_percentage must be in (0, 1]")
        if expiration_scan_frequency <= 0:
            raise ValueError("expiration_scan_frequency must be positive")

        self.size_limit = size_limit
        self.compaction_percentage = compaction_percentage
        self.expiration_scan_frequency = expiration_scan_frequency
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._listeners: List[EvictionListener] = []
        self._versions = itertools.count(1)
        self._last_scan = clock()

    def add_eviction_listener(self, listener: EvictionListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def next_version(self) -> int:
        """Allocate a registration version for a new entry."""
        with self._lock:
            return next(self._versions)

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for ``key`` and refresh its access time."""
        evicted: List[Tuple[CacheEntry, EvictionReason]] = []
        try:
            with self._lock:
                now = self._clock()
                self._scan_if_due(now, evicted)

                entry = self._entries.get(key)
                if entry is None:
                    return None
                if entry.is_expired(now):
                    del self._entries[key]
                    evicted.append((entry, EvictionReason.EXPIRED))
                    return None

                entry.touch(now)
                self._entries.move_to_end(key)
                return entry
        finally:
            self._notify(evicted)

    def set(
        self, key: str, value: object, options: CacheEntryOptions, version: int
    ) -> CacheEntry:
        """
        Insert or replace an entry.

        Args:
            key: Cache key
            value: Payload, never None
            options: Expiration and priority
            version: Registration version from ``next_version``

        Returns:
            The stored entry

        Raises:
            CacheCapacityExceededException: If compaction cannot free a slot
        """
        evicted: List[Tuple[CacheEntry, EvictionReason]] = []
        try:
            with self._lock:
                now = self._clock()
                self._scan_if_due(now, evicted)

                entry = CacheEntry(
                    key=key,
                    value=value,
                    version=version,
                    created_at=now,
                    absolute_expiration=now + options.absolute_expiration_seconds,
                    sliding_expiration=options.sliding_expiration_seconds,
                    priority=options.priority,
                )

                existing = self._entries.pop(key, None)
                if existing is not None:
                    evicted.append((existing, EvictionReason.REPLACED))
                elif len(self._entries) >= self.size_limit:
                    self._compact_locked(now, self.compaction_percentage, evicted)
                    if len(self._entries) >= self.size_limit:
                        pinned = sum(
                            1
                            for e in self._entries.values()
                            if e.priority == CacheItemPriority.NEVER_REMOVE
                        )
                        raise CacheCapacityExceededException(key, self.size_limit, pinned)

                self._entries[key] = entry
                return entry
        finally:
            self._notify(evicted)

    def remove(self, key: str) -> bool:
        evicted: List[Tuple[CacheEntry, EvictionReason]] = []
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is not None:
                evicted.append((entry, EvictionReason.REMOVED))
        self._notify(evicted)
        return bool(evicted)

    def compact(self, percentage: float) -> int:
        """Run a compaction pass; returns the number of entries removed."""
        evicted: List[Tuple[CacheEntry, EvictionReason]] = []
        with self._lock:
            self._compact_locked(self._clock(), percentage, evicted)
        self._notify(evicted)
        return len(evicted)

    def remove_expired(self) -> int:
        evicted: List[Tuple[CacheEntry, EvictionReason]] = []
        with self._lock:
            now = self._clock()
            self._remove_expired_locked(now, evicted)
            self._last_scan = now
        self._notify(evicted)
        return len(evicted)

    def clear(self, notify: bool = True) -> int:
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        if notify:
            self._notify([(entry, EvictionReason.CLEARED) for entry in entries])
        return len(entries)

    def keys(self) -> List[str]:
        """Live (unexpired) keys in least-recently-used order."""
        with self._lock:
            now = self._clock()
            return [key for key, entry in self._entries.items() if not entry.is_expired(now)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not entry.is_expired(self._clock())

    def _scan_if_due(
        self, now: float, evicted: List[Tuple[CacheEntry, EvictionReason]]
    ) -> None:
        if now - self._last_scan >= self.expiration_scan_frequency:
            self._remove_expired_locked(now, evicted)
            self._last_scan = now

    def _remove_expired_locked(
        self, now: float, evicted: List[Tuple[CacheEntry, EvictionReason]]
    ) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            evicted.append((self._entries.pop(key), EvictionReason.EXPIRED))
        return len(expired)

    def _compact_locked(
        self,
        now: float,
        percentage: float,
        evicted: List[Tuple[CacheEntry, EvictionReason]],
    ) -> None:
        """Expired entries first, then LOW/NORMAL/HIGH in LRU order."""
        target = max(1, math.ceil(len(self._entries) * percentage))
        target -= self._remove_expired_locked(now, evicted)

        for priority in _COMPACTION_ORDER:
            if target <= 0:
                break
            # OrderedDict iteration is oldest access first
            victims = [
                key for key, entry in self._entries.items() if entry.priority == priority
            ][:target]
            for key in victims:
                evicted.append((self._entries.pop(key), EvictionReason.CAPACITY))
            target -= len(victims)

        logger.debug(
            "Cache store compacted",
            removed=len(evicted),
            remaining=len(self._entries),
            percentage=percentage,
        )

    def _notify(self, evicted: List[Tuple[CacheEntry, EvictionReason]]) -> None:
        if not evicted:
            return
        with self._lock:
            listeners = list(self._listeners)
        for entry, reason in evicted:
            for listener in listeners:
                try:
                    listener(entry, reason)
                except Exception as e:
                    logger.warning(
                        "Cache eviction listener failed",
                        key=entry.key,
                        reason=reason.value,
                        error=str(e),
                        exc_info=True,
                    )
