"""
Tagged Memory Cache Service

Process-wide cache with tag-based invalidation, built from a
MemoryCacheStore and a TagIndex.

Consistency rules:
- set/remove/per-key invalidation run under the key's lock stripe, so the
  store entry and its tag registration change together
- every store removal path reports back through the eviction listener,
  which drops the registration of exactly the evicted version
- no I/O and no awaits happen while any lock is held
"""

import contextlib
import threading
from typing import Any, Iterable, Optional, Set, Type

import structlog
from prometheus_client import Counter

from ...constants import ESTIMATED_BYTES_PER_CACHE_ENTRY
from ...core.config import Settings, get_settings
from ...domain.cache.entities import CacheEntry
from ...domain.cache.interfaces import CacheService, KeyLike, TagLike
from ...domain.cache.value_objects import (
    CacheEntryOptions,
    CacheItemPriority,
    CacheStatsResponse,
    CacheTag,
    CacheTagInfo,
    EvictionReason,
    Seconds,
    format_bytes,
)
from .exceptions import InvalidCacheEntryException
from .memory_store import MemoryCacheStore
from .tag_index import TagIndex

logger = structlog.get_logger()

CACHE_HITS = Counter("dispatch_cache_hits_total", "Cache lookups served from memory")
CACHE_MISSES = Counter("dispatch_cache_misses_total", "Cache lookups that missed")
CACHE_EVICTIONS = Counter(
    "dispatch_cache_evictions_total", "Entries removed from the cache store", ["reason"]
)
CACHE_INVALIDATED_ENTRIES = Counter(
    "dispatch_cache_invalidated_entries_total", "Entries removed by tag invalidation"
)


class TaggedMemoryCacheService(CacheService):
    """
    In-process tag-aware cache.

    One instance is created per process and handed to every consumer.
    Failures inside the cache are logged and reported as a miss or a
    no-op; ``asyncio.CancelledError`` is never caught here.
    """

    def __init__(
        self,
        store: Optional[MemoryCacheStore] = None,
        tag_index: Optional[TagIndex] = None,
        default_absolute_expiration: float = 1800,
        default_sliding_expiration: float = 300,
        lock_stripes: int = 64,
    ):
        if lock_stripes < 1:
            raise ValueError("lock_stripes must be at least 1")

        self.store = store if store is not None else MemoryCacheStore()
        self.tag_index = tag_index if tag_index is not None else TagIndex()
        self.default_absolute_expiration = default_absolute_expiration
        self.default_sliding_expiration = default_sliding_expiration
        self._stripes = [threading.Lock() for _ in range(lock_stripes)]
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

        self.store.add_eviction_listener(self._on_eviction)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TaggedMemoryCacheService":
        """Build the process cache from application settings."""
        settings = settings or get_settings()
        store = MemoryCacheStore(
            size_limit=settings.CACHE_SIZE_LIMIT,
            compaction_percentage=settings.CACHE_COMPACTION_PERCENTAGE,
            expiration_scan_frequency=settings.CACHE_EXPIRATION_SCAN_FREQUENCY_SECONDS,
        )
        logger.info(
            "Cache service created",
            size_limit=settings.CACHE_SIZE_LIMIT,
            compaction_percentage=settings.CACHE_COMPACTION_PERCENTAGE,
        )
        return cls(
            store=store,
            default_absolute_expiration=settings.CACHE_DEFAULT_ABSOLUTE_EXPIRATION_SECONDS,
            default_sliding_expiration=settings.CACHE_DEFAULT_SLIDING_EXPIRATION_SECONDS,
            lock_stripes=settings.CACHE_LOCK_STRIPES,
        )

    def _stripe(self, key: str) -> threading.Lock:
        return self._stripes[hash(key) % len(self._stripes)]

    @contextlib.contextmanager
    def _all_stripes(self):
        # Fixed acquisition order
        with contextlib.ExitStack() as stack:
            for lock in self._stripes:
                stack.enter_context(lock)
            yield

    def _on_eviction(self, entry: CacheEntry, reason: EvictionReason) -> None:
        self.tag_index.unregister(entry.key, entry.version)
        CACHE_EVICTIONS.labels(reason=reason.value).inc()
        if reason in (EvictionReason.EXPIRED, EvictionReason.CAPACITY):
            logger.debug("Cache entry evicted", key=entry.key, reason=reason.value)

    def _record_lookup(self, hit: bool) -> None:
        with self._stats_lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1
        (CACHE_HITS if hit else CACHE_MISSES).inc()

    @staticmethod
    def _normalize_tags(tags: Iterable[TagLike]) -> Set[str]:
        if isinstance(tags, (str, CacheTag)):
            tags = [tags]
        return {str(CacheTag(str(tag))) for tag in tags}

    def _remove_key(self, key: str) -> bool:
        with self._stripe(key):
            removed = self.store.remove(key)
            self.tag_index.unregister(key)
            return removed

    async def get(self, key: KeyLike, expected_type: Optional[Type] = None) -> Optional[Any]:
        key_str = str(key)
        try:
            entry = self.store.get(key_str)
            if entry is None:
                self._record_lookup(hit=False)
                logger.debug("Cache miss", key=key_str)
                return None

            if expected_type is not None and not isinstance(entry.value, expected_type):
                self._record_lookup(hit=False)
                logger.warning(
                    "Cache value type mismatch",
                    key=key_str,
                    expected=expected_type.__name__,
                    actual=type(entry.value).__name__,
                )
                return None

            self._record_lookup(hit=True)
            logger.debug("Cache hit", key=key_str)
            return entry.value

        except Exception as e:
            logger.error("Cache get failed", key=key_str, error=str(e), exc_info=True)
            return None

    async def set(self, key: KeyLike, value: Any, expiration: Optional[Seconds] = None) -> None:
        await self.set_with_tags(key, value, (), expiration=expiration)

    async def set_with_tags(
        self,
        key: KeyLike,
        value: Any,
        tags: Iterable[TagLike],
        expiration: Optional[Seconds] = None,
        sliding_expiration: Optional[Seconds] = None,
        priority: CacheItemPriority = CacheItemPriority.NORMAL,
    ) -> None:
        key_str = str(key)
        try:
            if value is None:
                logger.debug("Skipping cache set for None value", key=key_str)
                return

            tag_set = self._normalize_tags(tags)
            try:
                options = CacheEntryOptions.create(
                    expiration,
                    sliding_expiration,
                    priority,
                    self.default_absolute_expiration,
                    self.default_sliding_expiration,
                )
            except ValueError as e:
                raise InvalidCacheEntryException(key_str, str(e), e) from e

            with self._stripe(key_str):
                version = self.store.next_version()
                self.tag_index.register(key_str, version, tag_set)
                try:
                    self.store.set(key_str, value, options, version)
                except Exception:
                    self.tag_index.unregister(key_str, version)
                    raise

            logger.debug("Cache entry stored", key=key_str, tags=sorted(tag_set))

        except Exception as e:
            logger.error(
                "Cache set failed",
                key=key_str,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def remove(self, key: KeyLike) -> None:
        key_str = str(key)
        try:
            self._remove_key(key_str)
        except Exception as e:
            logger.error("Cache remove failed", key=key_str, error=str(e), exc_info=True)

    async def remove_by_pattern(self, pattern: str) -> int:
        try:
            needle = pattern.lower()
            matches = [key for key in self.store.keys() if needle in key.lower()]
            removed = sum(1 for key in matches if self._remove_key(key))
            logger.info("Cache keys removed by pattern", pattern=pattern, count=removed)
            return removed
        except Exception as e:
            logger.error(
                "Cache remove by pattern failed", pattern=pattern, error=str(e), exc_info=True
            )
            return 0

    async def invalidate_tag(self, tag: TagLike) -> int:
        return await self.invalidate_tags([tag])

    async def invalidate_tags(self, tags: Iterable[TagLike]) -> int:
        try:
            tag_set = self._normalize_tags(tags or ())
            if not tag_set:
                return 0

            keys = self.tag_index.keys_for_tags(tag_set)
            removed = sum(1 for key in keys if self._remove_key(key))
            CACHE_INVALIDATED_ENTRIES.inc(removed)

            logger.info(
                "Cache tags invalidated",
                tags=sorted(tag_set),
                keys=len(keys),
                removed=removed,
            )
            return removed

        except Exception as e:
            logger.error("Cache tag invalidation failed", error=str(e), exc_info=True)
            return 0

    async def invalidate_all(self) -> None:
        try:
            with self._all_stripes():
                removed = self.store.clear(notify=False)
                self.tag_index.clear()
            CACHE_EVICTIONS.labels(reason=EvictionReason.CLEARED.value).inc(removed)
            logger.info("Cache cleared", removed=removed)
        except Exception as e:
            logger.error("Cache clear failed", error=str(e), exc_info=True)

    async def get_stats(self) -> CacheStatsResponse:
        try:
            total_keys = len(self.store.keys())
            with self._stats_lock:
                hits, misses = self._hits, self._misses
            lookups = hits + misses
            estimated = total_keys * ESTIMATED_BYTES_PER_CACHE_ENTRY

            return CacheStatsResponse(
                total_keys=total_keys,
                estimated_memory_bytes=estimated,
                total_memory_usage=format_bytes(estimated),
                hit_rate=hits / lookups if lookups else 0.0,
                miss_rate=misses / lookups if lookups else 0.0,
                tags=[
                    CacheTagInfo(tag=tag, key_count=count)
                    for tag, count in self.tag_index.tag_counts()
                ],
            )
        except Exception as e:
            logger.error("Failed to collect cache stats", error=str(e), exc_info=True)
            raise
