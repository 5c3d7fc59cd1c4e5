"""
Customer Repository

SQLAlchemy queries for customers. E-mail lookups are case-insensitive
because e-mails are stored lower-cased.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Customer
from .base import BaseRepository
from .interfaces import CustomerListItem, CustomerRepository


class SqlAlchemyCustomerRepository(BaseRepository, CustomerRepository):
    """Customer repository backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Customer)

    async def get_by_email(self, email: str) -> Optional[Customer]:
        stmt = select(Customer).where(Customer.email == email.strip().lower())
        return await self._scalar(stmt, "get_by_email")

    async def exists_by_email(self, email: str) -> bool:
        return await self.exists(Customer.email == email.strip().lower())

    async def get_customers_with_orders(self) -> List[Customer]:
        stmt = select(Customer).where(Customer.orders.any()).order_by(Customer.name)
        return await self._scalars(stmt, "get_customers_with_orders")

    async def search_by_name(self, name: str) -> List[Customer]:
        stmt = (
            select(Customer)
            .where(Customer.name.icontains(name.strip(), autoescape=True))
            .order_by(Customer.name)
        )
        return await self._scalars(stmt, "search_by_name")

    async def get_customer_list(self) -> List[CustomerListItem]:
        result = await self.session.execute(
            select(Customer.id, Customer.name).order_by(Customer.name)
        )
        return [CustomerListItem(id, name) for id, name in result.all()]
