"""
Cache-Invalidating Unit of Work

Groups repository writes into one durable commit and, once the commit has
succeeded, invalidates every cache tag the changed entities affect with a
single batched call.

Transaction protocol:
    Idle --begin_transaction--> Active --commit/rollback--> Idle

Inside an explicit transaction ``save_changes`` only flushes; the tags it
collects are issued after ``commit_transaction`` succeeds and dropped on
rollback. Failed writes never invalidate anything.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Type

import structlog
from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.sql import ColumnElement

from ..domain.cache.interfaces import CacheService
from ..domain.cache.value_objects import CacheTags
from ..models import Base, Customer, Order, Product
from .cached import (
    CacheExpirationPolicy,
    CachedCustomerRepository,
    CachedOrderRepository,
    CachedProductRepository,
)
from .customer import SqlAlchemyCustomerRepository
from .exceptions import ConcurrencyConflictError, PersistenceError, TransactionStateError
from .interfaces import CustomerRepository, OrderRepository, ProductRepository
from .order import SqlAlchemyOrderRepository
from .product import SqlAlchemyProductRepository

logger = structlog.get_logger()
tracer = trace.get_tracer(__name__)


class ChangeKind(str, Enum):
    """How an entity changed within one save."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class TrackedChange:
    entity: Any
    kind: ChangeKind


def tags_for_change(change: TrackedChange) -> Set[str]:
    """Cache tags affected by one changed entity."""
    entity = change.entity

    if isinstance(entity, Order):
        tags = {
            CacheTags.ORDERS,
            CacheTags.ORDER_LISTS,
            CacheTags.customer_orders(entity.customer_id),
            CacheTags.product_orders(entity.product_id),
            CacheTags.REPORTS,
        }
        # A brand-new order has no single-entity reads cached yet
        if change.kind != ChangeKind.ADDED:
            tags.add(CacheTags.order(entity.id))
        return tags

    if isinstance(entity, Customer):
        return {
            CacheTags.CUSTOMERS,
            CacheTags.CUSTOMER_LISTS,
            CacheTags.customer(entity.id),
            CacheTags.customer_orders(entity.id),
        }

    if isinstance(entity, Product):
        return {
            CacheTags.PRODUCTS,
            CacheTags.PRODUCT_LISTS,
            CacheTags.product(entity.id),
            CacheTags.REPORTS,
            CacheTags.product_orders(entity.id),
        }

    return set()


def collect_invalidation_tags(changes: Iterable[TrackedChange]) -> Set[str]:
    """De-duplicated union of tags for a batch of changes."""
    tags: Set[str] = set()
    for change in changes:
        tags |= tags_for_change(change)
    return tags


class UnitOfWork:
    """
    Unit of work over one AsyncSession.

    Repository accessors are created lazily and reused for the lifetime of
    the unit of work. With a cache service they are cached decorators.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache_service: Optional[CacheService] = None,
        expiration_policy: Optional[CacheExpirationPolicy] = None,
    ):
        self.session = session
        self.cache_service = cache_service
        self.expiration_policy = expiration_policy or CacheExpirationPolicy()
        self._orders: Optional[OrderRepository] = None
        self._customers: Optional[CustomerRepository] = None
        self._products: Optional[ProductRepository] = None
        self._transaction_active = False
        self._pending_tags: Set[str] = set()

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._transaction_active:
            logger.warning("Unit of work closed with an open transaction; rolling back")
            await self.rollback_transaction()
        await self.session.close()

    @property
    def orders(self) -> OrderRepository:
        if self._orders is None:
            repository = SqlAlchemyOrderRepository(self.session)
            self._orders = (
                CachedOrderRepository(repository, self.cache_service, self.expiration_policy)
                if self.cache_service is not None
                else repository
            )
        return self._orders

    @property
    def customers(self) -> CustomerRepository:
        if self._customers is None:
            repository = SqlAlchemyCustomerRepository(self.session)
            self._customers = (
                CachedCustomerRepository(
                    repository, self.cache_service, self.expiration_policy
                )
                if self.cache_service is not None
                else repository
            )
        return self._customers

    @property
    def products(self) -> ProductRepository:
        if self._products is None:
            repository = SqlAlchemyProductRepository(self.session)
            self._products = (
                CachedProductRepository(
                    repository, self.cache_service, self.expiration_policy
                )
                if self.cache_service is not None
                else repository
            )
        return self._products

    @property
    def in_transaction(self) -> bool:
        return self._transaction_active

    def _capture_changes(self) -> List[TrackedChange]:
        """Snapshot pending changes; must run before the flush clears them."""
        changes = [TrackedChange(entity, ChangeKind.ADDED) for entity in self.session.new]
        changes.extend(
            TrackedChange(entity, ChangeKind.MODIFIED)
            for entity in self.session.dirty
            if self.session.is_modified(entity)
        )
        changes.extend(
            TrackedChange(entity, ChangeKind.DELETED) for entity in self.session.deleted
        )
        return changes

    async def _rollback_quietly(self) -> None:
        try:
            await self.session.rollback()
        except Exception as e:
            logger.error("Unit of work: Rollback failed", error=str(e), exc_info=True)

    def _map_error(self, error: Exception) -> PersistenceError:
        if isinstance(error, StaleDataError):
            return ConcurrencyConflictError(original_error=error)
        return PersistenceError(original_error=error)

    async def _invalidate(self, tags: Set[str]) -> None:
        if not tags or self.cache_service is None:
            return
        await self.cache_service.invalidate_tags(sorted(tags))
        logger.info("Unit of work: Cache tags invalidated", tag_count=len(tags))

    async def save_changes(self) -> int:
        """
        Persist pending changes and invalidate affected cache tags.

        Returns:
            Number of entities written

        Raises:
            ConcurrencyConflictError: If an updated row changed concurrently
            PersistenceError: For any other database failure
        """
        with tracer.start_as_current_span("unit_of_work.save_changes") as span:
            changes = self._capture_changes()
            span.set_attribute("changes", len(changes))

            try:
                await self.session.flush()
                # Ids are assigned and attributes still loaded after the flush
                tags = collect_invalidation_tags(changes)
                if not self._transaction_active:
                    await self.session.commit()

            except SQLAlchemyError as e:
                await self._rollback_quietly()
                error = self._map_error(e)
                logger.error(
                    "Unit of work: Save failed",
                    error=str(e),
                    error_code=error.error_code,
                    changes=len(changes),
                )
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                if self._transaction_active:
                    self._transaction_active = False
                    self._pending_tags.clear()
                raise error from e

            if self._transaction_active:
                self._pending_tags |= tags
            else:
                await self._invalidate(tags)

            logger.debug(
                "Unit of work: Changes saved",
                changes=len(changes),
                deferred=self._transaction_active,
            )
            return len(changes)

    async def begin_transaction(self) -> None:
        if self._transaction_active:
            raise TransactionStateError("A transaction is already in progress.")
        self._transaction_active = True
        self._pending_tags.clear()
        logger.debug("Unit of work: Transaction started")

    async def commit_transaction(self) -> None:
        if not self._transaction_active:
            raise TransactionStateError("No transaction in progress to commit.")

        with tracer.start_as_current_span("unit_of_work.commit_transaction") as span:
            try:
                # Changes staged since the last save are part of the commit too
                changes = self._capture_changes()
                await self.session.flush()
                tags = self._pending_tags | collect_invalidation_tags(changes)
                await self.session.commit()
            except SQLAlchemyError as e:
                await self._rollback_quietly()
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                logger.error("Unit of work: Commit failed", error=str(e))
                raise self._map_error(e) from e
            finally:
                self._transaction_active = False
                self._pending_tags = set()

            await self._invalidate(tags)
            logger.debug("Unit of work: Transaction committed")

    async def rollback_transaction(self) -> None:
        if not self._transaction_active:
            raise TransactionStateError("No transaction in progress to rollback.")
        try:
            await self.session.rollback()
        finally:
            self._transaction_active = False
            self._pending_tags = set()
        logger.debug("Unit of work: Transaction rolled back")

    async def execute_bulk_update(
        self,
        model: Type[Base],
        predicate: ColumnElement[bool],
        values: Dict[str, Any],
    ) -> int:
        """
        Apply ``values`` to every ``model`` row matching ``predicate``.

        Rows are loaded and changed through the session so the normal
        save path (and its cache invalidation) applies.
        """
        if not values:
            raise ValueError("values cannot be empty")

        result = await self.session.execute(select(model).where(predicate))
        entities = list(result.scalars().all())
        if not entities:
            return 0

        for entity in entities:
            for attribute, value in values.items():
                if not hasattr(model, attribute):
                    raise ValueError(f"{model.__name__} has no attribute '{attribute}'")
                setattr(entity, attribute, value)

        return await self.save_changes()

    async def execute_bulk_delete(
        self, model: Type[Base], predicate: ColumnElement[bool]
    ) -> int:
        """Delete every ``model`` row matching ``predicate`` through the session."""
        result = await self.session.execute(select(model).where(predicate))
        entities = list(result.scalars().all())
        if not entities:
            return 0

        for entity in entities:
            await self.session.delete(entity)

        return await self.save_changes()
