"""
Unit tests for the cached repository decorators.

Inner repositories are AsyncMocks so the tests can count how often a read
reaches the database; the cache is the real tagged memory cache.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from dispatch_manager.domain.cache.value_objects import CacheTags
from dispatch_manager.domain.order_status import OrderStatus
from dispatch_manager.models import Order
from dispatch_manager.repositories.cached import (
    CacheExpirationPolicy,
    CachedCustomerRepository,
    CachedOrderRepository,
    CachedProductRepository,
    clause_fingerprint,
)
from dispatch_manager.repositories.cached.base import CachedRepository, detached_copy
from dispatch_manager.repositories.interfaces import (
    CustomerIntervalCount,
    CustomerRepository,
    OrderRepository,
    ProductRepository,
)


class TestClauseFingerprint:
    """Test predicate fingerprints used in cache keys."""

    def test_same_clause_same_fingerprint(self):
        """Test equal filters built twice share a fingerprint."""
        assert clause_fingerprint(Order.quantity > 1) == clause_fingerprint(Order.quantity > 1)

    def test_parameter_values_matter(self):
        """Test different bound values never share a fingerprint."""
        assert clause_fingerprint(Order.quantity > 1) != clause_fingerprint(Order.quantity > 2)

    def test_none_and_columns(self):
        """Test None passes through and ORM attributes are accepted."""
        assert clause_fingerprint(None) is None
        assert clause_fingerprint(Order.created_at) != clause_fingerprint(Order.quantity)


class TestCacheExpirationPolicy:
    """Test CacheExpirationPolicy validation."""

    @pytest.mark.parametrize(
        "field", ["entity_seconds", "list_seconds", "search_seconds", "analytics_seconds"]
    )
    def test_non_positive_rejected(self, field):
        """Test every lifetime must be positive."""
        with pytest.raises(ValueError):
            CacheExpirationPolicy(**{field: 0})


class TestCachedRepositoryBase:
    """Test the contract subclasses of CachedRepository must fill in."""

    def test_entity_tag_required(self, cache_service):
        """Test a decorator without entity_tag cannot be built."""

        class UntaggedRepository(CachedRepository):
            model = Order

        with pytest.raises(TypeError, match="entity_tag"):
            UntaggedRepository(AsyncMock(spec=OrderRepository), cache_service)


class TestDetachedCopy:
    """Test the copies the decorators put in the cache."""

    def test_orm_instance_copied(self, factories):
        """Test the copy carries the column values but is a separate object."""
        order = factories.order(factories.customer(), factories.product())

        copy = detached_copy(order)
        order.status = OrderStatus.CANCELLED

        assert copy is not order
        assert copy.id == order.id
        assert copy.quantity == order.quantity
        assert copy.status is OrderStatus.CREATED

    def test_containers_copied(self, factories):
        """Test lists, tuples and dicts are copied; named tuples are kept."""
        customer = factories.customer()
        row = CustomerIntervalCount(customer.id, customer.name, "1-50 km", 1)
        counts = {"1-50 km": 1}

        copied_list, total = detached_copy(([customer], 1))
        copied_row = detached_copy(row)
        copied_counts = detached_copy(counts)

        assert copied_list[0] is not customer
        assert copied_list[0].email == customer.email
        assert total == 1
        assert copied_row is row
        assert copied_counts == counts
        assert copied_counts is not counts


class TestCachedOrderRepository:
    """Test CachedOrderRepository read-through caching."""

    @pytest.fixture
    def inner(self):
        return AsyncMock(spec=OrderRepository)

    @pytest.fixture
    def repository(self, inner, cache_service):
        return CachedOrderRepository(inner, cache_service)

    @pytest.fixture
    def order(self, factories):
        return factories.order(factories.customer(), factories.product())

    @pytest.mark.asyncio
    async def test_get_by_id_hits_cache(self, repository, inner, order):
        """Test a second read is served from the cache."""
        inner.get_by_id.return_value = order

        first = await repository.get_by_id(order.id)
        second = await repository.get_by_id(order.id)

        assert first is order
        assert second is not order
        assert (second.id, second.distance_km) == (order.id, order.distance_km)
        inner.get_by_id.assert_awaited_once_with(order.id)

    @pytest.mark.asyncio
    async def test_get_by_id_tags(self, repository, inner, cache_service, order):
        """Test entity reads are tagged with the type and entity tags."""
        inner.get_by_id.return_value = order
        await repository.get_by_id(order.id)

        assert cache_service.tag_index.tags_for_key(f"order:{order.id}") == frozenset(
            {CacheTags.ORDERS, CacheTags.order(order.id)}
        )

    @pytest.mark.asyncio
    async def test_missing_entity_not_cached(self, repository, inner):
        """Test None results always go back to the database."""
        inner.get_by_id.return_value = None
        order_id = uuid4()

        assert await repository.get_by_id(order_id) is None
        assert await repository.get_by_id(order_id) is None
        assert inner.get_by_id.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_list_is_cached(self, repository, inner):
        """Test an empty result is a legitimate cached value."""
        inner.get_all.return_value = []

        assert await repository.get_all() == []
        assert await repository.get_all() == []
        inner.get_all.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_zero_count_is_cached(self, repository, inner):
        """Test counts are boxed so zero is not confused with a miss."""
        inner.count.return_value = 0

        assert await repository.count() == 0
        assert await repository.count() == 0
        inner.count.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_count_keyed_by_predicate(self, repository, inner):
        """Test different predicates use different cache entries."""
        inner.count.side_effect = [1, 2]

        assert await repository.count(Order.quantity > 1) == 1
        assert await repository.count(Order.quantity > 2) == 2
        assert await repository.count(Order.quantity > 1) == 1
        assert inner.count.await_count == 2

    @pytest.mark.asyncio
    async def test_get_paged_round_trip(self, repository, inner, order):
        """Test paged results come back as (list, total)."""
        inner.get_paged.return_value = ([order], 7)

        first = await repository.get_paged(1, 10)
        second = await repository.get_paged(1, 10)

        assert first == ([order], 7)
        assert [o.id for o in second[0]] == [order.id]
        assert second[1] == 7
        assert isinstance(second[0], list)
        inner.get_paged.assert_awaited_once_with(1, 10, None, None, True)

    @pytest.mark.asyncio
    async def test_orders_by_customer_invalidated_by_customer_orders_tag(
        self, repository, inner, cache_service, order
    ):
        """Test customer-scoped lists drop when that customer's orders change."""
        inner.get_orders_by_customer_id.return_value = [order]

        await repository.get_orders_by_customer_id(order.customer_id)
        await cache_service.invalidate_tag(CacheTags.customer_orders(order.customer_id))
        await repository.get_orders_by_customer_id(order.customer_id)

        assert inner.get_orders_by_customer_id.await_count == 2

    @pytest.mark.asyncio
    async def test_orders_by_status_keyed_by_status(self, repository, inner):
        """Test each status has its own entry."""
        inner.get_orders_by_status.return_value = []

        await repository.get_orders_by_status(OrderStatus.CREATED)
        await repository.get_orders_by_status("created")
        await repository.get_orders_by_status(OrderStatus.SENDING)

        assert inner.get_orders_by_status.await_count == 2

    @pytest.mark.asyncio
    async def test_reports_tagged(self, repository, inner, cache_service):
        """Test reports drop on the reports tag and on customer changes."""
        inner.get_order_count_by_distance_interval.return_value = {"1-50 km": 0}
        inner.get_order_count_by_customer_and_interval.return_value = [
            CustomerIntervalCount(uuid4(), "Ana", "1-50 km", 1)
        ]

        await repository.get_order_count_by_distance_interval()
        await repository.get_order_count_by_customer_and_interval()
        assert await cache_service.invalidate_tag(CacheTags.CUSTOMERS) == 1
        assert await cache_service.invalidate_tag(CacheTags.REPORTS) == 1

    @pytest.mark.asyncio
    async def test_pass_through_reads(self, repository, inner, order):
        """Test detail reads are never cached."""
        inner.get_order_with_full_details.return_value = order

        await repository.get_order_with_full_details(order.id)
        await repository.get_order_with_full_details(order.id)

        assert inner.get_order_with_full_details.await_count == 2

    @pytest.mark.asyncio
    async def test_writes_do_not_invalidate(self, repository, inner, cache_service, order):
        """Test add/update leave invalidation to the unit of work."""
        inner.get_by_id.return_value = order
        await repository.get_by_id(order.id)

        await repository.add(order)
        await repository.update(order)

        inner.add.assert_awaited_once_with(order)
        inner.update.assert_awaited_once_with(order)
        assert (await cache_service.get(f"order:{order.id}")).id == order.id

    @pytest.mark.asyncio
    async def test_remove_by_id_invalidates(self, repository, inner, cache_service, order):
        """Test deleting by id drops the entity and type-level reads."""
        inner.get_by_id.return_value = order
        inner.get_all.return_value = [order]
        inner.remove_by_id.return_value = True
        await repository.get_by_id(order.id)
        await repository.get_all()

        assert await repository.remove_by_id(order.id)

        assert await cache_service.get(f"order:{order.id}") is None
        assert await cache_service.get("orders:all") is None

    @pytest.mark.asyncio
    async def test_changes_to_loaded_instance_stay_out_of_cache(self, repository, inner, order):
        """Test mutating the instance a miss returned leaves the cached copy alone."""
        inner.get_by_id.return_value = order

        loaded = await repository.get_by_id(order.id)
        loaded.status = OrderStatus.CANCELLED
        cached = await repository.get_by_id(order.id)
        cached.quantity = 99

        assert cached.status is OrderStatus.CREATED
        assert (await repository.get_by_id(order.id)).quantity == order.quantity

    @pytest.mark.asyncio
    async def test_entries_expire_with_policy(self, inner, cache_service, clock, order):
        """Test the configured lifetime bounds cached reads."""
        repository = CachedOrderRepository(
            inner, cache_service, CacheExpirationPolicy(entity_seconds=5)
        )
        inner.get_by_id.return_value = order

        await repository.get_by_id(order.id)
        clock.advance(6)
        await repository.get_by_id(order.id)

        assert inner.get_by_id.await_count == 2

    @pytest.mark.asyncio
    async def test_cache_failure_reads_through(self, repository, inner, cache_service, order):
        """Test a broken cache never breaks the read."""
        inner.get_by_id.return_value = order

        with patch.object(cache_service.store, "get", side_effect=RuntimeError("boom")):
            assert await repository.get_by_id(order.id) is order


class TestCachedCustomerRepository:
    """Test CachedCustomerRepository."""

    @pytest.fixture
    def inner(self):
        return AsyncMock(spec=CustomerRepository)

    @pytest.fixture
    def repository(self, inner, cache_service):
        return CachedCustomerRepository(inner, cache_service)

    @pytest.mark.asyncio
    async def test_get_by_email_tags_from_result(
        self, repository, inner, cache_service, factories
    ):
        """Test e-mail reads are tagged with the found customer's id."""
        customer = factories.customer(email="ana@example.com")
        inner.get_by_email.return_value = customer

        await repository.get_by_email("ANA@example.com")
        await repository.get_by_email("ana@example.com")
        inner.get_by_email.assert_awaited_once()

        assert await cache_service.invalidate_tag(CacheTags.customer(customer.id)) == 1

    @pytest.mark.asyncio
    async def test_search_with_empty_term_reads_through(self, repository, inner, cache_service):
        """Test an invalid search term skips the cache instead of failing."""
        inner.search_by_name.return_value = []

        await repository.search_by_name("  ")
        await repository.search_by_name("  ")

        assert inner.search_by_name.await_count == 2
        assert (await cache_service.get_stats()).total_keys == 0

    @pytest.mark.asyncio
    async def test_search_normalizes_term(self, repository, inner):
        """Test searches differing only in case share an entry."""
        inner.search_by_name.return_value = []

        await repository.search_by_name("Ana")
        await repository.search_by_name(" ana ")

        inner.search_by_name.assert_awaited_once_with("Ana")

    @pytest.mark.asyncio
    async def test_exists_by_email_passes_through(self, repository, inner):
        """Test existence checks always hit the database."""
        inner.exists_by_email.return_value = False

        await repository.exists_by_email("a@b.co")
        await repository.exists_by_email("a@b.co")

        assert inner.exists_by_email.await_count == 2


class TestCachedProductRepository:
    """Test CachedProductRepository aggregates."""

    @pytest.fixture
    def inner(self):
        return AsyncMock(spec=ProductRepository)

    @pytest.fixture
    def repository(self, inner, cache_service):
        return CachedProductRepository(inner, cache_service)

    @pytest.mark.asyncio
    async def test_average_price_boxed(self, repository, inner):
        """Test a zero average is cached and unboxed."""
        inner.get_average_product_price.return_value = Decimal("0.00")

        assert await repository.get_average_product_price() == Decimal("0.00")
        assert await repository.get_average_product_price() == Decimal("0.00")
        inner.get_average_product_price.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_price_range_boxed(self, repository, inner, cache_service):
        """Test the price range comes back as a tuple and is tagged as a report."""
        inner.get_price_range.return_value = (Decimal("1.00"), Decimal("9.00"))

        assert await repository.get_price_range() == (Decimal("1.00"), Decimal("9.00"))
        assert await repository.get_price_range() == (Decimal("1.00"), Decimal("9.00"))
        inner.get_price_range.assert_awaited_once()

        assert await cache_service.invalidate_tag(CacheTags.REPORTS) == 1

    @pytest.mark.asyncio
    async def test_price_range_filter_keys(self, repository, inner):
        """Test equal decimal bounds share an entry."""
        inner.get_products_by_price_range.return_value = []

        await repository.get_products_by_price_range(Decimal("10"), Decimal("20"))
        await repository.get_products_by_price_range(Decimal("10.00"), Decimal("20.0"))
        await repository.get_products_by_price_range(Decimal("10"), Decimal("21"))

        assert inner.get_products_by_price_range.await_count == 2
