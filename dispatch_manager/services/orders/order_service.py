"""
Order Service

Order use cases: placing an order (distance and cost are computed here
and fixed for the order's lifetime), moving it through its lifecycle and
the distance-interval reports.
"""

import logging
from typing import Dict, List, Optional
from uuid import UUID

from opentelemetry import trace

from ...core.config import Settings, get_settings
from ...domain.exceptions import DomainException
from ...domain.order_status import OrderStatus
from ...domain.services import CostCalculationService, DistanceCalculationService
from ...domain.value_objects import Coordinate, Quantity
from ...models import Order
from ...repositories.interfaces import CustomerIntervalCount
from ...repositories.unit_of_work import UnitOfWork
from ..exceptions import BusinessRuleError, NotFoundError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class OrderService:
    """Application service for dispatch orders."""

    def __init__(
        self,
        uow: UnitOfWork,
        distance_service: Optional[DistanceCalculationService] = None,
        cost_service: Optional[CostCalculationService] = None,
        settings: Optional[Settings] = None,
    ):
        self.uow = uow
        self.distance_service = distance_service or DistanceCalculationService()
        if cost_service is None:
            currency = (settings or get_settings()).DEFAULT_CURRENCY
            cost_service = CostCalculationService(currency=currency)
        self.cost_service = cost_service

    async def create_order(
        self,
        customer_id: UUID,
        product_id: UUID,
        quantity: int,
        origin_latitude: float,
        origin_longitude: float,
        destination_latitude: float,
        destination_longitude: float,
    ) -> Order:
        """
        Place a new order.

        Raises:
            NotFoundError: If the customer or product does not exist
            BusinessRuleError: If coordinates, distance or quantity are invalid
        """
        with tracer.start_as_current_span("order_service.create_order") as span:
            span.set_attribute("customer_id", str(customer_id))
            span.set_attribute("product_id", str(product_id))

            if await self.uow.customers.get_by_id(customer_id) is None:
                raise NotFoundError("Customer", customer_id)
            if await self.uow.products.get_by_id(product_id) is None:
                raise NotFoundError("Product", product_id)

            try:
                origin = Coordinate(origin_latitude, origin_longitude)
                destination = Coordinate(destination_latitude, destination_longitude)
                if origin == destination:
                    raise DomainException(
                        "Origin and destination cannot be the same",
                        error_code="SAME_ORIGIN_DESTINATION",
                    )
                distance = self.distance_service.calculate_distance(origin, destination)
                cost = self.cost_service.calculate_cost(distance)
                order = Order.create(
                    customer_id,
                    product_id,
                    Quantity(quantity),
                    origin,
                    destination,
                    distance,
                    cost,
                )
            except DomainException as e:
                span.set_status(trace.Status(trace.StatusCode.ERROR, e.message))
                raise BusinessRuleError.from_domain(e) from e

            await self.uow.orders.add(order)
            await self.uow.save_changes()

            logger.info(
                f"Order {order.id} created: {distance} ({distance.cost_interval}), cost {cost}"
            )
            return order

    async def update_order_status(self, order_id: UUID, new_status: OrderStatus) -> Order:
        """
        Move an order to ``new_status``.

        Raises:
            NotFoundError: If the order does not exist
            BusinessRuleError: If the transition is not allowed
            ConcurrencyConflictError: If the order changed concurrently
        """
        with tracer.start_as_current_span("order_service.update_order_status") as span:
            span.set_attribute("order_id", str(order_id))

            order = await self.uow.orders.get_order_with_full_details(order_id)
            if order is None:
                raise NotFoundError("Order", order_id)

            previous = order.status
            try:
                order.update_status(OrderStatus(new_status))
            except DomainException as e:
                raise BusinessRuleError.from_domain(e) from e

            await self.uow.orders.update(order)
            await self.uow.save_changes()

            logger.info(
                f"Order {order_id} moved from {previous.value} to {order.status.value}"
            )
            return order

    async def get_order(self, order_id: UUID) -> Order:
        order = await self.uow.orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def get_orders_by_customer(self, customer_id: UUID) -> List[Order]:
        if await self.uow.customers.get_by_id(customer_id) is None:
            raise NotFoundError("Customer", customer_id)
        return await self.uow.orders.get_orders_by_customer_id(customer_id)

    async def get_orders_by_status(self, status: OrderStatus) -> List[Order]:
        return await self.uow.orders.get_orders_by_status(OrderStatus(status))

    async def get_order_metrics(self, customer_id: Optional[UUID] = None) -> Dict[str, int]:
        """Order counts per distance interval, optionally for one customer."""
        if customer_id is None:
            return await self.uow.orders.get_order_count_by_distance_interval()
        if await self.uow.customers.get_by_id(customer_id) is None:
            raise NotFoundError("Customer", customer_id)
        return await self.uow.orders.get_order_count_by_distance_interval_for_customer(
            customer_id
        )

    async def get_customer_interval_report(self) -> List[CustomerIntervalCount]:
        return await self.uow.orders.get_order_count_by_customer_and_interval()
