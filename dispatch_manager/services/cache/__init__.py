"""Cache management services."""

from .cache_manager import CacheHealthStatus, CacheManager

__all__ = ["CacheManager", "CacheHealthStatus"]
