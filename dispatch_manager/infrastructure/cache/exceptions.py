"""
Cache Infrastructure Exceptions

Exceptions raised inside the in-process cache layer. They never cross the
cache service boundary: the service logs them and degrades to a miss or a
no-op.
"""

from typing import Any, Dict, Optional


class CacheException(Exception):
    """Base exception for cache-related errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class CacheCapacityExceededException(CacheException):
    """Raised when compaction cannot make room for a new entry."""

    def __init__(self, key: str, size_limit: int, pinned_entries: int = 0):
        super().__init__(
            message=f"Cache is full ({size_limit} entries); entry '{key}' rejected",
            error_code="CACHE_CAPACITY_EXCEEDED",
            details={
                "key": key,
                "size_limit": size_limit,
                "pinned_entries": pinned_entries,
            },
        )


class InvalidCacheEntryException(CacheException):
    """Raised when an entry cannot be stored as requested."""

    def __init__(self, key: str, reason: str, original_error: Optional[Exception] = None):
        details = {"key": key, "reason": reason}
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=f"Invalid cache entry '{key}': {reason}",
            error_code="CACHE_INVALID_ENTRY",
            details=details,
        )
        if original_error:
            self.__cause__ = original_error
