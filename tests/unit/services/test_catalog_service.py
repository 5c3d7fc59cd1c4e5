"""
Unit tests for the Catalog service.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from dispatch_manager.services.catalog import CatalogService
from dispatch_manager.services.exceptions import BusinessRuleError, NotFoundError


class TestCustomerUseCases:
    """Test customer registration and contact updates."""

    @pytest.fixture
    def service(self, uow):
        return CatalogService(uow)

    @pytest.mark.asyncio
    async def test_create_customer(self, service):
        """Test registration normalizes the e-mail."""
        customer = await service.create_customer("Ana Torres", " Ana@Example.com ", "300")

        assert customer.email == "ana@example.com"
        assert (await service.get_customer(customer.id)).name == "Ana Torres"
        assert (await service.find_customer_by_email("ANA@example.com")).id == customer.id

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service):
        """Test e-mails are unique regardless of case."""
        await service.create_customer("Ana Torres", "ana@example.com", "300")

        with pytest.raises(BusinessRuleError) as exc_info:
            await service.create_customer("Ana Two", "ANA@example.com", "301")

        assert exc_info.value.error_code == "DUPLICATE_EMAIL"

    @pytest.mark.asyncio
    async def test_invalid_customer(self, service):
        """Test domain validation surfaces as a business rule error."""
        with pytest.raises(BusinessRuleError) as exc_info:
            await service.create_customer("Ana", "not-an-email", "300")

        assert exc_info.value.error_code == "INVALID_FIELD"

    @pytest.mark.asyncio
    async def test_update_contact(self, service):
        """Test contact updates are visible through the cached read."""
        customer = await service.create_customer("Ana Torres", "ana@example.com", "300")
        await service.get_customer(customer.id)

        await service.update_customer_contact(customer.id, "ana.t@example.com", "311")

        refreshed = await service.get_customer(customer.id)
        assert refreshed.email == "ana.t@example.com"
        assert refreshed.phone == "311"

    @pytest.mark.asyncio
    async def test_update_contact_to_taken_email(self, service):
        """Test moving to another customer's e-mail is rejected."""
        await service.create_customer("Ana Torres", "ana@example.com", "300")
        bruno = await service.create_customer("Bruno Diaz", "bruno@example.com", "301")

        with pytest.raises(BusinessRuleError) as exc_info:
            await service.update_customer_contact(bruno.id, "ana@example.com", "301")

        assert exc_info.value.error_code == "DUPLICATE_EMAIL"

    @pytest.mark.asyncio
    async def test_update_contact_invalid_phone_leaves_customer(self, service):
        """Test a rejected update changes nothing."""
        customer = await service.create_customer("Ana Torres", "ana@example.com", "300")

        with pytest.raises(BusinessRuleError):
            await service.update_customer_contact(customer.id, "new@example.com", " ")

        assert customer.email == "ana@example.com"

    @pytest.mark.asyncio
    async def test_unknown_customer(self, service):
        """Test missing customers raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.get_customer(uuid4())
        with pytest.raises(NotFoundError):
            await service.update_customer_contact(uuid4(), "a@b.co", "300")

    @pytest.mark.asyncio
    async def test_search_customers(self, service):
        """Test search sees customers created after a cached search."""
        await service.create_customer("Ana Torres", "ana@example.com", "300")
        assert [c.name for c in await service.search_customers("diaz")] == []

        await service.create_customer("Bruno Diaz", "bruno@example.com", "301")

        assert [c.name for c in await service.search_customers("diaz")] == ["Bruno Diaz"]


class TestProductUseCases:
    """Test product registration, pricing and aggregates."""

    @pytest.fixture
    def service(self, uow):
        return CatalogService(uow)

    @pytest.mark.asyncio
    async def test_create_and_search(self, service):
        """Test products are searchable by name."""
        await service.create_product("Cement bag", Decimal("25.50"), "bag")

        assert [p.name for p in await service.search_products("cement")] == ["Cement bag"]

    @pytest.mark.asyncio
    async def test_negative_price_rejected(self, service):
        """Test prices cannot be negative."""
        with pytest.raises(BusinessRuleError):
            await service.create_product("Cement bag", Decimal("-1"), "bag")

    @pytest.mark.asyncio
    async def test_price_summary_follows_updates(self, service):
        """Test cached aggregates refresh after a price change."""
        cement = await service.create_product("Cement bag", Decimal("20.00"), "bag")
        await service.create_product("Sand ton", Decimal("80.00"), "ton")
        assert (await service.get_price_summary())["average"] == Decimal("50.00")

        updated = await service.update_product_price(cement.id, Decimal("40.00"))

        assert updated.unit_price == Decimal("40.00")
        assert await service.get_price_summary() == {
            "average": Decimal("60.00"),
            "min": Decimal("40.00"),
            "max": Decimal("80.00"),
        }

    @pytest.mark.asyncio
    async def test_price_summary_empty(self, service):
        """Test an empty catalogue summarizes to zero."""
        assert await service.get_price_summary() == {
            "average": Decimal("0.00"),
            "min": Decimal("0.00"),
            "max": Decimal("0.00"),
        }

    @pytest.mark.asyncio
    async def test_update_unknown_product(self, service):
        """Test pricing or reading a missing product."""
        with pytest.raises(NotFoundError):
            await service.update_product_price(uuid4(), Decimal("1.00"))
        with pytest.raises(NotFoundError):
            await service.get_product(uuid4())

    @pytest.mark.asyncio
    async def test_get_product_after_price_change(self, service):
        """Test the cached product reflects a committed price change."""
        cement = await service.create_product("Cement bag", Decimal("20.00"), "bag")
        await service.get_product(cement.id)

        await service.update_product_price(cement.id, Decimal("22.00"))

        assert (await service.get_product(cement.id)).unit_price == Decimal("22.00")
