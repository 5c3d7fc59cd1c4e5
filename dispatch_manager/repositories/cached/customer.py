"""
Cached Customer Repository
"""

from typing import List, Optional
from uuid import UUID

from ...domain.cache.value_objects import CacheKey, CacheTags
from ...models import Customer
from ..interfaces import CustomerListItem, CustomerRepository
from .base import CachedRepository


class CachedCustomerRepository(CachedRepository, CustomerRepository):
    """Cache-aside decorator for a CustomerRepository."""

    model = Customer
    entity_name = "customer"
    collection_name = "customers"
    type_tag = CacheTags.CUSTOMERS
    list_tag = CacheTags.CUSTOMER_LISTS

    inner: CustomerRepository

    def entity_tag(self, id: UUID) -> str:
        return CacheTags.customer(id)

    async def get_by_email(self, email: str) -> Optional[Customer]:
        return await self._get_or_load(
            lambda: CacheKey.customer_by_email(email),
            lambda: self.inner.get_by_email(email),
            lambda customer: [CacheTags.CUSTOMERS, CacheTags.customer(customer.id)],
            self.policy.entity_seconds,
            expected_type=Customer,
        )

    async def exists_by_email(self, email: str) -> bool:
        return await self.inner.exists_by_email(email)

    async def get_customers_with_orders(self) -> List[Customer]:
        return await self._get_or_load(
            CacheKey.customers_with_orders,
            self.inner.get_customers_with_orders,
            [CacheTags.CUSTOMERS, CacheTags.CUSTOMER_LISTS, CacheTags.ORDERS],
            self.policy.list_seconds,
            expected_type=list,
        )

    async def search_by_name(self, name: str) -> List[Customer]:
        return await self._get_or_load(
            lambda: CacheKey.customer_search(name),
            lambda: self.inner.search_by_name(name),
            self._collection_tags(),
            self.policy.search_seconds,
            expected_type=list,
        )

    async def get_customer_list(self) -> List[CustomerListItem]:
        return await self._get_or_load(
            CacheKey.customer_list,
            self.inner.get_customer_list,
            self._collection_tags(),
            self.policy.list_seconds,
            expected_type=list,
        )
