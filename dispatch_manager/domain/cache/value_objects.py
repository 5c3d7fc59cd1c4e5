"""
Cache Value Objects

Immutable value objects for the cache domain: keys, tags, entry options and
the statistics models exposed to management callers.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum, IntEnum
from typing import List, Optional, Union
from urllib.parse import quote
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from ...constants import MAX_SEARCH_TERM_LENGTH

Seconds = Union[timedelta, int, float]


class CacheItemPriority(IntEnum):
    """Eviction priority; lower priorities are compacted first."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    NEVER_REMOVE = 3


class EvictionReason(str, Enum):
    """Why an entry left the cache store."""

    REMOVED = "removed"
    REPLACED = "replaced"
    EXPIRED = "expired"
    CAPACITY = "capacity"
    CLEARED = "cleared"


def _segment(part: object) -> str:
    """Encode one key segment so that ``:`` and whitespace never leak in."""
    if isinstance(part, bool):
        text = "true" if part else "false"
    elif isinstance(part, (datetime, date)):
        text = part.isoformat()
    elif isinstance(part, Decimal):
        text = format(part.normalize(), "f")
    elif isinstance(part, Enum):
        text = str(part.value)
    else:
        text = str(part)
    return quote(text, safe="")


def normalize_search_term(term: str) -> str:
    """Lower-case and trim a search term; reject empty or oversized ones."""
    normalized = (term or "").strip().lower()
    if not normalized:
        raise ValueError("Search term cannot be empty")
    if len(normalized) > MAX_SEARCH_TERM_LENGTH:
        raise ValueError(
            f"Search term too long (max {MAX_SEARCH_TERM_LENGTH} characters)"
        )
    return normalized


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Keys are ``prefix:segment:segment`` with every segment percent-encoded,
    so distinct argument tuples always produce distinct keys.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate cache key format."""
        if not self.value:
            raise ValueError("Cache key cannot be empty")

        if len(self.value) > 512:
            raise ValueError("Cache key too long (max 512 characters)")

        if any(char.isspace() for char in self.value):
            raise ValueError("Cache key cannot contain whitespace")

    @classmethod
    def compose(cls, prefix: str, *parts: object) -> "CacheKey":
        """Build a key from a literal prefix and encoded argument segments."""
        return cls(":".join([prefix, *(_segment(part) for part in parts)]))

    # Generic repository reads
    @classmethod
    def entity(cls, entity_name: str, entity_id: Union[str, UUID]) -> "CacheKey":
        return cls.compose(entity_name, entity_id)

    @classmethod
    def all_of(cls, collection_name: str) -> "CacheKey":
        return cls.compose(collection_name, "all")

    @classmethod
    def count_of(
        cls, collection_name: str, predicate_fingerprint: Optional[str] = None
    ) -> "CacheKey":
        return cls.compose(collection_name, "count", predicate_fingerprint or "0")

    @classmethod
    def paged(
        cls,
        collection_name: str,
        page_number: int,
        page_size: int,
        predicate_fingerprint: Optional[str],
        order_fingerprint: Optional[str],
        ascending: bool,
    ) -> "CacheKey":
        return cls.compose(
            collection_name,
            "paged",
            page_number,
            page_size,
            predicate_fingerprint or "0",
            order_fingerprint or "0",
            ascending,
        )

    # Orders
    @classmethod
    def orders_by_customer(cls, customer_id: Union[str, UUID]) -> "CacheKey":
        return cls.compose("orders_by_customer", customer_id)

    @classmethod
    def orders_by_status(cls, status: object) -> "CacheKey":
        return cls.compose("orders_by_status", status)

    @classmethod
    def orders_by_date_range(cls, start: datetime, end: datetime) -> "CacheKey":
        return cls.compose("orders_by_date", start, end)

    @classmethod
    def order_count_by_distance(cls) -> "CacheKey":
        return cls.compose("order_count_by_distance")

    @classmethod
    def order_count_by_distance_for_customer(
        cls, customer_id: Union[str, UUID]
    ) -> "CacheKey":
        return cls.compose("order_count_by_distance_customer", customer_id)

    @classmethod
    def order_count_by_customer_and_interval(cls) -> "CacheKey":
        return cls.compose("order_count_by_customer_interval")

    # Customers
    @classmethod
    def customer_by_email(cls, email: str) -> "CacheKey":
        return cls.compose("customer_by_email", email.strip().lower())

    @classmethod
    def customers_with_orders(cls) -> "CacheKey":
        return cls.compose("customers_with_orders")

    @classmethod
    def customer_list(cls) -> "CacheKey":
        return cls.compose("customer_list")

    @classmethod
    def customer_search(cls, term: str) -> "CacheKey":
        return cls.compose("customer_search", normalize_search_term(term))

    # Products
    @classmethod
    def product_search(cls, term: str) -> "CacheKey":
        return cls.compose("product_search", normalize_search_term(term))

    @classmethod
    def active_products(cls) -> "CacheKey":
        return cls.compose("active_products")

    @classmethod
    def products_by_price_range(
        cls, min_price: Decimal, max_price: Decimal
    ) -> "CacheKey":
        return cls.compose(
            "products_by_price", Decimal(str(min_price)), Decimal(str(max_price))
        )

    @classmethod
    def product_list(cls) -> "CacheKey":
        return cls.compose("product_list")

    @classmethod
    def average_product_price(cls) -> "CacheKey":
        return cls.compose("average_product_price")

    @classmethod
    def product_price_range(cls) -> "CacheKey":
        return cls.compose("product_price_range")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CacheTag:
    """
    Cache tag value object for cache invalidation groups.

    Allows invalidating multiple cache entries by tag.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate tag value."""
        if not self.value:
            raise ValueError("Cache tag cannot be empty")
        if len(self.value) > 100:
            raise ValueError("Cache tag too long (max 100 characters)")
        if any(char.isspace() for char in self.value):
            raise ValueError("Cache tag cannot contain whitespace")

    def __str__(self) -> str:
        return self.value


class CacheTags:
    """Tag vocabulary shared by cached repositories and the unit of work."""

    ORDERS = "orders"
    CUSTOMERS = "customers"
    PRODUCTS = "products"
    ORDER_LISTS = "order_lists"
    CUSTOMER_LISTS = "customer_lists"
    PRODUCT_LISTS = "product_lists"
    REPORTS = "reports"

    @staticmethod
    def order(order_id: Union[str, UUID]) -> str:
        return str(CacheTag(f"order:{order_id}"))

    @staticmethod
    def customer(customer_id: Union[str, UUID]) -> str:
        return str(CacheTag(f"customer:{customer_id}"))

    @staticmethod
    def product(product_id: Union[str, UUID]) -> str:
        return str(CacheTag(f"product:{product_id}"))

    @staticmethod
    def customer_orders(customer_id: Union[str, UUID]) -> str:
        return str(CacheTag(f"customer_orders:{customer_id}"))

    @staticmethod
    def product_orders(product_id: Union[str, UUID]) -> str:
        return str(CacheTag(f"product_orders:{product_id}"))


def to_seconds(value: Optional[Seconds]) -> Optional[float]:
    """Normalize a timedelta or number of seconds to float seconds."""
    if value is None:
        return None
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


@dataclass(frozen=True)
class CacheEntryOptions:
    """
    Expiration and priority settings for one cache entry.

    Every entry carries a finite absolute lifetime; the sliding window is
    optional and never extends an entry past its absolute expiration.
    """

    absolute_expiration_seconds: float
    sliding_expiration_seconds: Optional[float] = None
    priority: CacheItemPriority = CacheItemPriority.NORMAL

    def __post_init__(self) -> None:
        """Reject non-positive lifetimes."""
        if self.absolute_expiration_seconds <= 0:
            raise ValueError("Absolute expiration must be positive")
        if (
            self.sliding_expiration_seconds is not None
            and self.sliding_expiration_seconds <= 0
        ):
            raise ValueError("Sliding expiration must be positive")

    @classmethod
    def create(
        cls,
        expiration: Optional[Seconds],
        sliding_expiration: Optional[Seconds],
        priority: CacheItemPriority,
        default_absolute_seconds: float,
        default_sliding_seconds: float,
    ) -> "CacheEntryOptions":
        """Fill in the default absolute lifetime and sliding window."""
        absolute = to_seconds(expiration)
        sliding = to_seconds(sliding_expiration)
        if absolute is None:
            absolute = default_absolute_seconds
        if sliding is None:
            sliding = default_sliding_seconds
        return cls(absolute, sliding, CacheItemPriority(priority))


class CacheTagInfo(BaseModel):
    """Number of live keys registered under one tag."""

    tag: str = Field(..., description="Tag name")
    key_count: int = Field(..., ge=0, description="Live keys carrying the tag")


class CacheStatsResponse(BaseModel):
    """Point-in-time cache statistics."""

    total_keys: int = Field(..., ge=0, description="Live entries in the store")
    estimated_memory_bytes: int = Field(
        ..., ge=0, description="Estimated payload footprint"
    )
    total_memory_usage: str = Field(..., description="Human readable memory estimate")
    hit_rate: float = Field(0.0, description="Hits divided by lookups")
    miss_rate: float = Field(0.0, description="Misses divided by lookups")
    tags: List[CacheTagInfo] = Field(default_factory=list)

    @field_validator("hit_rate", "miss_rate")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("Rates must be between 0 and 1")
        return v


def format_bytes(size: int) -> str:
    """Render a byte count as ``1.50 KB`` style text."""
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{value:.2f} {units[index]}"
