"""
Repository Interfaces

Abstract repository contracts shared by the SQLAlchemy repositories and
their cached decorators. Predicates are SQLAlchemy boolean clauses
(``Order.status == OrderStatus.CREATED``); includes are relationship
attributes (``Order.customer``).
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.sql import ColumnElement

from ..domain.order_status import OrderStatus
from ..models import Base, Customer, Order, Product


class CustomerIntervalCount(NamedTuple):
    customer_id: UUID
    customer_name: str
    interval: str
    count: int


class CustomerListItem(NamedTuple):
    id: UUID
    name: str


class ProductListItem(NamedTuple):
    id: UUID
    name: str
    unit_price: Decimal


class Repository(ABC):
    """Generic repository contract."""

    @abstractmethod
    async def get_by_id(self, id: UUID) -> Optional[Any]:
        pass

    @abstractmethod
    async def get_all(self) -> List[Any]:
        pass

    @abstractmethod
    async def find(self, predicate: ColumnElement[bool]) -> List[Any]:
        pass

    @abstractmethod
    async def first_or_default(self, predicate: ColumnElement[bool]) -> Optional[Any]:
        pass

    @abstractmethod
    async def exists(self, predicate: ColumnElement[bool]) -> bool:
        pass

    @abstractmethod
    async def count(self, predicate: Optional[ColumnElement[bool]] = None) -> int:
        pass

    @abstractmethod
    async def get_by_id_with_includes(self, id: UUID, *includes: Any) -> Optional[Any]:
        pass

    @abstractmethod
    async def get_all_with_includes(self, *includes: Any) -> List[Any]:
        pass

    @abstractmethod
    async def find_with_includes(
        self, predicate: ColumnElement[bool], *includes: Any
    ) -> List[Any]:
        pass

    @abstractmethod
    async def get_paged(
        self,
        page_number: int,
        page_size: int,
        predicate: Optional[ColumnElement[bool]] = None,
        order_by: Optional[Any] = None,
        ascending: bool = True,
    ) -> Tuple[List[Any], int]:
        """Return one page of entities and the total matching count."""
        pass

    @abstractmethod
    async def add(self, entity: Base) -> Base:
        pass

    @abstractmethod
    async def add_range(self, entities: Sequence[Base]) -> None:
        pass

    @abstractmethod
    async def update(self, entity: Base) -> Base:
        pass

    @abstractmethod
    async def update_range(self, entities: Sequence[Base]) -> None:
        pass

    @abstractmethod
    async def remove(self, entity: Base) -> None:
        pass

    @abstractmethod
    async def remove_range(self, entities: Sequence[Base]) -> None:
        pass

    @abstractmethod
    async def remove_by_id(self, id: UUID) -> bool:
        """Delete by primary key; returns False when nothing matched."""
        pass


class OrderRepository(Repository):
    """Order persistence contract. Order lists are newest first."""

    @abstractmethod
    async def get_orders_by_customer_id(self, customer_id: UUID) -> List[Order]:
        pass

    @abstractmethod
    async def get_orders_by_customer_id_with_details(
        self, customer_id: UUID
    ) -> List[Order]:
        pass

    @abstractmethod
    async def get_orders_by_date_range(
        self, start_date: datetime, end_date: datetime
    ) -> List[Order]:
        pass

    @abstractmethod
    async def get_orders_by_status(self, status: OrderStatus) -> List[Order]:
        pass

    @abstractmethod
    async def get_orders_with_details(self) -> List[Order]:
        pass

    @abstractmethod
    async def get_order_count_by_distance_interval(self) -> Dict[str, int]:
        pass

    @abstractmethod
    async def get_order_count_by_distance_interval_for_customer(
        self, customer_id: UUID
    ) -> Dict[str, int]:
        pass

    @abstractmethod
    async def get_order_count_by_customer_and_interval(
        self,
    ) -> List[CustomerIntervalCount]:
        pass

    @abstractmethod
    async def get_order_with_full_details(self, order_id: UUID) -> Optional[Order]:
        pass

    @abstractmethod
    async def has_orders_in_progress_for_customer(self, customer_id: UUID) -> bool:
        pass


class CustomerRepository(Repository):
    """Customer persistence contract."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Customer]:
        pass

    @abstractmethod
    async def exists_by_email(self, email: str) -> bool:
        pass

    @abstractmethod
    async def get_customers_with_orders(self) -> List[Customer]:
        pass

    @abstractmethod
    async def search_by_name(self, name: str) -> List[Customer]:
        pass

    @abstractmethod
    async def get_customer_list(self) -> List[CustomerListItem]:
        pass


class ProductRepository(Repository):
    """Product persistence contract."""

    @abstractmethod
    async def search_by_name(self, name: str) -> List[Product]:
        pass

    @abstractmethod
    async def get_active_products(self) -> List[Product]:
        pass

    @abstractmethod
    async def get_products_by_price_range(
        self, min_price: Decimal, max_price: Decimal
    ) -> List[Product]:
        pass

    @abstractmethod
    async def get_product_list(self) -> List[ProductListItem]:
        pass

    @abstractmethod
    async def get_average_product_price(self) -> Decimal:
        pass

    @abstractmethod
    async def get_price_range(self) -> Tuple[Decimal, Decimal]:
        """Return ``(min, max)`` unit price."""
        pass
