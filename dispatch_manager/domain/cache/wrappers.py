"""
Cache Result Wrappers

Scalars and tuples are boxed into these objects before they are cached so
that a legitimate ``0`` or empty result is never confused with a miss.
They only exist at the cache boundary; callers get the unboxed value.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Tuple


@dataclass(frozen=True)
class CountWrapper:
    count: int


@dataclass(frozen=True)
class PagedResultWrapper:
    items: Tuple[Any, ...]
    total_count: int

    def unwrap(self) -> Tuple[List[Any], int]:
        return list(self.items), self.total_count


@dataclass(frozen=True)
class AverageProductPriceWrapper:
    average_price: Decimal


@dataclass(frozen=True)
class ProductPriceRangeWrapper:
    min_price: Decimal
    max_price: Decimal

    def unwrap(self) -> Tuple[Decimal, Decimal]:
        return self.min_price, self.max_price
