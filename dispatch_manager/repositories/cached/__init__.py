"""Cache-aside decorators for the entity repositories."""

from .base import CacheExpirationPolicy, CachedRepository, clause_fingerprint
from .customer import CachedCustomerRepository
from .order import CachedOrderRepository
from .product import CachedProductRepository

__all__ = [
    "CacheExpirationPolicy",
    "CachedRepository",
    "CachedCustomerRepository",
    "CachedOrderRepository",
    "CachedProductRepository",
    "clause_fingerprint",
]
