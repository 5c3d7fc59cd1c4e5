"""
Catalog Service

Customer and product use cases. Reads go through the cached
repositories; writes are committed by the unit of work, which also
invalidates the affected cache tags.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from ...domain.exceptions import DomainException
from ...models import Customer, Product
from ...repositories.unit_of_work import UnitOfWork
from ..exceptions import BusinessRuleError, NotFoundError

logger = logging.getLogger(__name__)


class CatalogService:
    """Application service for customers and products."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    # Customers

    async def create_customer(self, name: str, email: str, phone: str) -> Customer:
        """
        Register a customer.

        Raises:
            BusinessRuleError: If the data is invalid or the e-mail is taken
        """
        try:
            customer = Customer.create(name, email, phone)
        except DomainException as e:
            raise BusinessRuleError.from_domain(e) from e

        if await self.uow.customers.exists_by_email(customer.email):
            raise BusinessRuleError(
                "A customer with this email already exists",
                error_code="DUPLICATE_EMAIL",
                details={"email": customer.email},
            )

        await self.uow.customers.add(customer)
        await self.uow.save_changes()
        logger.info(f"Customer {customer.id} created")
        return customer

    async def update_customer_contact(
        self, customer_id: UUID, email: str, phone: str
    ) -> Customer:
        customer = await self.uow.customers.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)

        normalized = email.strip().lower()
        if normalized != customer.email and await self.uow.customers.exists_by_email(
            normalized
        ):
            raise BusinessRuleError(
                "A customer with this email already exists",
                error_code="DUPLICATE_EMAIL",
                details={"email": normalized},
            )

        customer = await self.uow.customers.update(customer)
        try:
            customer.update_contact_info(email, phone)
        except DomainException as e:
            raise BusinessRuleError.from_domain(e) from e

        await self.uow.save_changes()
        return customer

    async def get_customer(self, customer_id: UUID) -> Customer:
        customer = await self.uow.customers.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return customer

    async def find_customer_by_email(self, email: str) -> Optional[Customer]:
        return await self.uow.customers.get_by_email(email)

    async def search_customers(self, name: str) -> List[Customer]:
        return await self.uow.customers.search_by_name(name)

    # Products

    async def create_product(
        self,
        name: str,
        unit_price: Decimal,
        unit: str,
        description: Optional[str] = None,
    ) -> Product:
        try:
            product = Product.create(name, unit_price, unit, description)
        except DomainException as e:
            raise BusinessRuleError.from_domain(e) from e

        await self.uow.products.add(product)
        await self.uow.save_changes()
        logger.info(f"Product {product.id} created")
        return product

    async def update_product_price(self, product_id: UUID, unit_price: Decimal) -> Product:
        product = await self.uow.products.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)

        product = await self.uow.products.update(product)
        try:
            product.update_price(unit_price)
        except DomainException as e:
            raise BusinessRuleError.from_domain(e) from e

        await self.uow.save_changes()
        return product

    async def get_product(self, product_id: UUID) -> Product:
        product = await self.uow.products.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    async def search_products(self, name: str) -> List[Product]:
        return await self.uow.products.search_by_name(name)

    async def get_price_summary(self) -> Dict[str, Decimal]:
        """Average, minimum and maximum unit price of the catalogue."""
        average = await self.uow.products.get_average_product_price()
        minimum, maximum = await self.uow.products.get_price_range()
        return {"average": average, "min": minimum, "max": maximum}
