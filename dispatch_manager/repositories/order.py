"""
Order Repository

SQLAlchemy queries for orders, including the distance-interval reports.
"""

from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..constants import DISTANCE_TIERS
from ..domain.order_status import OPEN_STATUSES, OrderStatus
from ..domain.value_objects import distance_tier
from ..models import Customer, Order
from .base import BaseRepository
from .interfaces import CustomerIntervalCount, OrderRepository

logger = structlog.get_logger()

INTERVAL_ORDER = {label: index for index, (_, label, _) in enumerate(DISTANCE_TIERS)}


def count_by_interval(distances: List[float]) -> Dict[str, int]:
    """Bucket distances into every interval label, zero-filled, in tier order."""
    counts = Counter(distance_tier(km)[1] for km in distances)
    return {label: counts.get(label, 0) for _, label, _ in DISTANCE_TIERS}


class SqlAlchemyOrderRepository(BaseRepository, OrderRepository):
    """Order repository backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Order)

    def _newest_first(self, stmt):
        return stmt.order_by(Order.created_at.desc())

    def _details(self, stmt):
        return stmt.options(selectinload(Order.customer), selectinload(Order.product))

    async def get_orders_by_customer_id(self, customer_id: UUID) -> List[Order]:
        stmt = self._newest_first(select(Order).where(Order.customer_id == customer_id))
        return await self._scalars(stmt, "get_orders_by_customer_id")

    async def get_orders_by_customer_id_with_details(
        self, customer_id: UUID
    ) -> List[Order]:
        stmt = self._details(
            self._newest_first(select(Order).where(Order.customer_id == customer_id))
        )
        return await self._scalars(stmt, "get_orders_by_customer_id_with_details")

    async def get_orders_by_date_range(
        self, start_date: datetime, end_date: datetime
    ) -> List[Order]:
        if start_date > end_date:
            raise ValueError("start_date must not be after end_date")
        stmt = self._newest_first(
            select(Order).where(Order.created_at >= start_date, Order.created_at <= end_date)
        )
        return await self._scalars(stmt, "get_orders_by_date_range")

    async def get_orders_by_status(self, status: OrderStatus) -> List[Order]:
        stmt = self._newest_first(select(Order).where(Order.status == OrderStatus(status)))
        return await self._scalars(stmt, "get_orders_by_status")

    async def get_orders_with_details(self) -> List[Order]:
        stmt = self._details(self._newest_first(select(Order)))
        return await self._scalars(stmt, "get_orders_with_details")

    async def get_order_count_by_distance_interval(self) -> Dict[str, int]:
        result = await self.session.execute(select(Order.distance_km))
        return count_by_interval(list(result.scalars().all()))

    async def get_order_count_by_distance_interval_for_customer(
        self, customer_id: UUID
    ) -> Dict[str, int]:
        result = await self.session.execute(
            select(Order.distance_km).where(Order.customer_id == customer_id)
        )
        return count_by_interval(list(result.scalars().all()))

    async def get_order_count_by_customer_and_interval(
        self,
    ) -> List[CustomerIntervalCount]:
        """Order counts per (customer, interval), sorted by customer name then interval."""
        result = await self.session.execute(
            select(Order.customer_id, Customer.name, Order.distance_km).join(
                Customer, Order.customer_id == Customer.id
            )
        )

        counts: Counter = Counter()
        for customer_id, customer_name, distance_km in result.all():
            counts[(customer_id, customer_name, distance_tier(distance_km)[1])] += 1

        rows = [
            CustomerIntervalCount(customer_id, name, interval, count)
            for (customer_id, name, interval), count in counts.items()
        ]
        rows.sort(key=lambda row: (row.customer_name, INTERVAL_ORDER[row.interval]))

        logger.debug("Repository: Customer interval report built", rows=len(rows))
        return rows

    async def get_order_with_full_details(self, order_id: UUID) -> Optional[Order]:
        stmt = self._details(select(Order).where(Order.id == order_id))
        return await self._scalar(stmt, "get_order_with_full_details")

    async def has_orders_in_progress_for_customer(self, customer_id: UUID) -> bool:
        return await self.exists(
            (Order.customer_id == customer_id) & Order.status.in_(list(OPEN_STATUSES))
        )
