"""
Cached Order Repository

Order reads tagged so that any order change, and any change to the
customer's orders, drops them.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from ...domain.cache.value_objects import CacheKey, CacheTags
from ...domain.order_status import OrderStatus
from ...models import Order
from ..interfaces import CustomerIntervalCount, OrderRepository
from .base import CachedRepository


class CachedOrderRepository(CachedRepository, OrderRepository):
    """Cache-aside decorator for an OrderRepository."""

    model = Order
    entity_name = "order"
    collection_name = "orders"
    type_tag = CacheTags.ORDERS
    list_tag = CacheTags.ORDER_LISTS

    inner: OrderRepository

    def entity_tag(self, id: UUID) -> str:
        return CacheTags.order(id)

    async def get_orders_by_customer_id(self, customer_id: UUID) -> List[Order]:
        return await self._get_or_load(
            lambda: CacheKey.orders_by_customer(customer_id),
            lambda: self.inner.get_orders_by_customer_id(customer_id),
            [CacheTags.ORDERS, CacheTags.ORDER_LISTS, CacheTags.customer_orders(customer_id)],
            self.policy.list_seconds,
            expected_type=list,
        )

    async def get_orders_by_customer_id_with_details(
        self, customer_id: UUID
    ) -> List[Order]:
        return await self.inner.get_orders_by_customer_id_with_details(customer_id)

    async def get_orders_by_date_range(
        self, start_date: datetime, end_date: datetime
    ) -> List[Order]:
        return await self._get_or_load(
            lambda: CacheKey.orders_by_date_range(start_date, end_date),
            lambda: self.inner.get_orders_by_date_range(start_date, end_date),
            self._collection_tags(),
            self.policy.list_seconds,
            expected_type=list,
        )

    async def get_orders_by_status(self, status: OrderStatus) -> List[Order]:
        return await self._get_or_load(
            lambda: CacheKey.orders_by_status(OrderStatus(status)),
            lambda: self.inner.get_orders_by_status(status),
            self._collection_tags(),
            self.policy.list_seconds,
            expected_type=list,
        )

    async def get_orders_with_details(self) -> List[Order]:
        return await self.inner.get_orders_with_details()

    async def get_order_count_by_distance_interval(self) -> Dict[str, int]:
        return await self._get_or_load(
            CacheKey.order_count_by_distance,
            self.inner.get_order_count_by_distance_interval,
            [CacheTags.ORDERS, CacheTags.REPORTS],
            self.policy.analytics_seconds,
            expected_type=dict,
        )

    async def get_order_count_by_distance_interval_for_customer(
        self, customer_id: UUID
    ) -> Dict[str, int]:
        return await self._get_or_load(
            lambda: CacheKey.order_count_by_distance_for_customer(customer_id),
            lambda: self.inner.get_order_count_by_distance_interval_for_customer(
                customer_id
            ),
            [CacheTags.ORDERS, CacheTags.REPORTS, CacheTags.customer_orders(customer_id)],
            self.policy.analytics_seconds,
            expected_type=dict,
        )

    async def get_order_count_by_customer_and_interval(
        self,
    ) -> List[CustomerIntervalCount]:
        # Rows carry customer names, so customer edits invalidate them too
        return await self._get_or_load(
            CacheKey.order_count_by_customer_and_interval,
            self.inner.get_order_count_by_customer_and_interval,
            [CacheTags.ORDERS, CacheTags.CUSTOMERS, CacheTags.REPORTS],
            self.policy.analytics_seconds,
            expected_type=list,
        )

    async def get_order_with_full_details(self, order_id: UUID) -> Optional[Order]:
        return await self.inner.get_order_with_full_details(order_id)

    async def has_orders_in_progress_for_customer(self, customer_id: UUID) -> bool:
        return await self.inner.has_orders_in_progress_for_customer(customer_id)
