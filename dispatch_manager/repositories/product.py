"""
Product Repository

SQLAlchemy queries for products and the catalogue price aggregates.
"""

from decimal import Decimal
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Product
from .base import BaseRepository
from .interfaces import ProductListItem, ProductRepository

_CENTS = Decimal("0.01")


def _to_price(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(_CENTS)


class SqlAlchemyProductRepository(BaseRepository, ProductRepository):
    """Product repository backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Product)

    async def search_by_name(self, name: str) -> List[Product]:
        stmt = (
            select(Product)
            .where(Product.name.icontains(name.strip(), autoescape=True))
            .order_by(Product.name)
        )
        return await self._scalars(stmt, "search_by_name")

    async def get_active_products(self) -> List[Product]:
        return await self._scalars(
            select(Product).order_by(Product.name), "get_active_products"
        )

    async def get_products_by_price_range(
        self, min_price: Decimal, max_price: Decimal
    ) -> List[Product]:
        if min_price > max_price:
            raise ValueError("min_price must not exceed max_price")
        stmt = (
            select(Product)
            .where(Product.unit_price >= min_price, Product.unit_price <= max_price)
            .order_by(Product.unit_price)
        )
        return await self._scalars(stmt, "get_products_by_price_range")

    async def get_product_list(self) -> List[ProductListItem]:
        result = await self.session.execute(
            select(Product.id, Product.name, Product.unit_price).order_by(Product.name)
        )
        return [
            ProductListItem(id, name, _to_price(price)) for id, name, price in result.all()
        ]

    async def get_average_product_price(self) -> Decimal:
        """Average unit price; 0.00 for an empty catalogue."""
        average = await self._scalar(
            select(func.avg(Product.unit_price)), "get_average_product_price"
        )
        return _to_price(average)

    async def get_price_range(self) -> Tuple[Decimal, Decimal]:
        result = await self.session.execute(
            select(func.min(Product.unit_price), func.max(Product.unit_price))
        )
        minimum, maximum = result.one()
        return _to_price(minimum), _to_price(maximum)
