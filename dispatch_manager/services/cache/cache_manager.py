"""
Cache Manager Service

High-level cache management: statistics, a write/read/remove health
probe and manual invalidation for operators.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from opentelemetry import trace

from ...constants import CACHE_HEALTH_PROBE_KEY, get_current_timestamp
from ...domain.cache.interfaces import CacheService
from ...domain.cache.value_objects import CacheStatsResponse

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class CacheHealthStatus:
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class CacheManager:
    """
    High-level cache management service.

    Wraps the process cache for management callers. Invalidation helpers
    never raise; statistics failures are reported by the health check.
    """

    def __init__(self, cache_service: CacheService, probe_ttl_seconds: int = 60):
        self.cache = cache_service
        self.probe_ttl_seconds = probe_ttl_seconds

    async def health_check(self) -> Dict[str, Any]:
        """Write, read back and remove a probe entry, then collect stats."""
        with tracer.start_as_current_span("cache_manager.health_check") as span:
            timestamp = get_current_timestamp()
            probe_value = f"probe:{timestamp.isoformat()}"

            try:
                await self.cache.set(CACHE_HEALTH_PROBE_KEY, probe_value, self.probe_ttl_seconds)
                read_back = await self.cache.get(CACHE_HEALTH_PROBE_KEY, str)
                await self.cache.remove(CACHE_HEALTH_PROBE_KEY)
                after_remove = await self.cache.get(CACHE_HEALTH_PROBE_KEY)
                stats = await self.cache.get_stats()

                problems = []
                if read_back != probe_value:
                    problems.append("probe value could not be read back")
                if after_remove is not None:
                    problems.append("probe value survived removal")

                status = CacheHealthStatus.DEGRADED if problems else CacheHealthStatus.HEALTHY
                span.set_attribute("cache_status", status)

                if problems:
                    logger.warning(f"Cache health check degraded: {', '.join(problems)}")

                return {
                    "status": status,
                    "timestamp": timestamp.isoformat(),
                    "problems": problems,
                    "stats": stats.model_dump(),
                }

            except Exception as e:
                logger.error(f"Cache health check failed: {e}")
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))

                return {
                    "status": CacheHealthStatus.UNHEALTHY,
                    "timestamp": timestamp.isoformat(),
                    "error": str(e),
                }

    async def get_stats(self) -> CacheStatsResponse:
        with tracer.start_as_current_span("cache_manager.get_stats"):
            return await self.cache.get_stats()

    async def invalidate_all(self) -> None:
        """Drop every cached entry."""
        with tracer.start_as_current_span("cache_manager.invalidate_all"):
            await self.cache.invalidate_all()
            logger.info("Invalidated all cache entries")

    async def invalidate_tags(self, tags: Iterable[str], reason: str = "manual") -> int:
        """
        Invalidate all entries registered under any of ``tags``.

        Args:
            tags: Tags to invalidate
            reason: Reason for invalidation (for logging)

        Returns:
            Number of cache entries removed
        """
        with tracer.start_as_current_span("cache_manager.invalidate_tags") as span:
            tag_list = list(tags)
            span.set_attribute("tag_count", len(tag_list))
            span.set_attribute("reason", reason)

            count = await self.cache.invalidate_tags(tag_list)
            logger.info(
                f"Invalidated {count} cache entries for tags {tag_list}",
                extra={"count": count, "reason": reason},
            )
            return count

    async def invalidate_pattern(self, pattern: str, reason: Optional[str] = None) -> int:
        """Remove every key containing ``pattern``."""
        with tracer.start_as_current_span("cache_manager.invalidate_pattern") as span:
            span.set_attribute("pattern", pattern)
            count = await self.cache.remove_by_pattern(pattern)
            logger.info(
                f"Removed {count} cache entries matching '{pattern}'",
                extra={"count": count, "reason": reason or "manual"},
            )
            return count
