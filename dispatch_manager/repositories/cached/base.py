"""
Cached Repository Base

Read-through caching around a repository. Reads look in the cache first
and store misses with tags; writes pass straight through and leave
invalidation to the unit of work.
"""

import hashlib
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, Tuple, Type, Union
from uuid import UUID

import structlog
from sqlalchemy import inspect
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.sql import ColumnElement

from ...core.config import Settings
from ...domain.cache.interfaces import CacheService
from ...domain.cache.value_objects import CacheKey
from ...domain.cache.wrappers import CountWrapper, PagedResultWrapper
from ...models import Base
from ..interfaces import Repository

logger = structlog.get_logger()

TagSource = Union[Iterable[str], Callable[[Any], Iterable[str]]]


def clause_fingerprint(clause: Optional[Any]) -> Optional[str]:
    """
    Stable SHA-256 fingerprint of a SQL clause.

    Built from the compiled SQL text plus the bound parameter values, so
    equal filters share a cache key and different values never do.
    """
    if clause is None:
        return None
    if hasattr(clause, "__clause_element__"):
        clause = clause.__clause_element__()
    compiled = clause.compile()
    params = sorted((name, repr(value)) for name, value in compiled.params.items())
    return hashlib.sha256(f"{compiled}|{params}".encode("utf-8")).hexdigest()


def detached_copy(value: Any) -> Any:
    """
    Copy ORM instances out of their session.

    Column values are copied as committed state onto a new detached
    instance, so the copy never refreshes, never lazy-loads and never sees
    later changes made to the original. Plain lists, tuples and dicts are
    copied element by element; anything else is returned as is.
    """
    if isinstance(value, Base):
        mapper = inspect(value).mapper
        copy = mapper.class_manager.new_instance()
        for column in mapper.column_attrs:
            set_committed_value(copy, column.key, getattr(value, column.key))
        make_transient_to_detached(copy)
        return copy
    if type(value) is list:
        return [detached_copy(item) for item in value]
    if type(value) is tuple:
        return tuple(detached_copy(item) for item in value)
    if type(value) is dict:
        return {key: detached_copy(item) for key, item in value.items()}
    return value


@dataclass(frozen=True)
class CacheExpirationPolicy:
    """Absolute lifetimes, in seconds, for each family of cached reads."""

    entity_seconds: int = 600
    list_seconds: int = 300
    search_seconds: int = 120
    analytics_seconds: int = 1800

    def __post_init__(self) -> None:
        for name in ("entity_seconds", "list_seconds", "search_seconds", "analytics_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheExpirationPolicy":
        return cls(
            entity_seconds=settings.CACHE_ENTITY_TTL_SECONDS,
            list_seconds=settings.CACHE_LIST_TTL_SECONDS,
            search_seconds=settings.CACHE_SEARCH_TTL_SECONDS,
            analytics_seconds=settings.CACHE_ANALYTICS_TTL_SECONDS,
        )


class CachedRepository(Repository):
    """
    Generic cached decorator.

    Subclasses set ``model``, the key prefixes and the two type-level tags,
    and implement ``entity_tag`` for single-entity tags.

    The cache only ever holds detached copies. A miss returns the
    session's own instance to the caller; a hit returns a fresh detached
    copy, which callers pass to ``update`` before changing it.
    """

    model: Type[Base]
    entity_name: str
    collection_name: str
    type_tag: str
    list_tag: str

    def __init__(
        self,
        inner: Repository,
        cache_service: CacheService,
        expiration_policy: Optional[CacheExpirationPolicy] = None,
    ):
        self.inner = inner
        self.cache = cache_service
        self.policy = expiration_policy or CacheExpirationPolicy()

    @abstractmethod
    def entity_tag(self, id: UUID) -> str:
        pass

    async def _get_or_load(
        self,
        key_factory: Callable[[], CacheKey],
        loader: Callable[[], Awaitable[Any]],
        tags: TagSource,
        expiration: int,
        expected_type: Optional[Type] = None,
        box: Optional[Callable[[Any], Any]] = None,
        unbox: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        try:
            key = key_factory()
        except Exception as e:
            logger.warning(
                "Cached repository: key build failed, reading through",
                model=self.model.__name__,
                error=str(e),
            )
            return await loader()

        cached = await self.cache.get(key, expected_type)
        if cached is not None:
            return detached_copy(unbox(cached) if unbox else cached)

        result = await loader()
        if result is None:
            return result

        try:
            snapshot = detached_copy(result)
            resolved_tags = list(tags(result) if callable(tags) else tags)
        except Exception as e:
            logger.warning(
                "Cached repository: snapshot failed, result not cached",
                model=self.model.__name__,
                key=str(key),
                error=str(e),
            )
            return result

        await self.cache.set_with_tags(
            key, box(snapshot) if box else snapshot, resolved_tags, expiration
        )
        return result

    def _collection_tags(self) -> List[str]:
        return [self.type_tag, self.list_tag]

    # Cached reads

    async def get_by_id(self, id: UUID) -> Optional[Base]:
        return await self._get_or_load(
            lambda: CacheKey.entity(self.entity_name, id),
            lambda: self.inner.get_by_id(id),
            [self.type_tag, self.entity_tag(id)],
            self.policy.entity_seconds,
            expected_type=self.model,
        )

    async def get_all(self) -> List[Base]:
        return await self._get_or_load(
            lambda: CacheKey.all_of(self.collection_name),
            self.inner.get_all,
            self._collection_tags(),
            self.policy.list_seconds,
            expected_type=list,
        )

    async def count(self, predicate: Optional[ColumnElement[bool]] = None) -> int:
        return await self._get_or_load(
            lambda: CacheKey.count_of(self.collection_name, clause_fingerprint(predicate)),
            lambda: self.inner.count(predicate),
            self._collection_tags(),
            self.policy.list_seconds,
            expected_type=CountWrapper,
            box=CountWrapper,
            unbox=lambda wrapper: wrapper.count,
        )

    async def get_paged(
        self,
        page_number: int,
        page_size: int,
        predicate: Optional[ColumnElement[bool]] = None,
        order_by: Optional[Any] = None,
        ascending: bool = True,
    ) -> Tuple[List[Base], int]:
        return await self._get_or_load(
            lambda: CacheKey.paged(
                self.collection_name,
                page_number,
                page_size,
                clause_fingerprint(predicate),
                clause_fingerprint(order_by),
                ascending,
            ),
            lambda: self.inner.get_paged(
                page_number, page_size, predicate, order_by, ascending
            ),
            self._collection_tags(),
            self.policy.list_seconds,
            expected_type=PagedResultWrapper,
            box=lambda page: PagedResultWrapper(tuple(page[0]), page[1]),
            unbox=lambda wrapper: wrapper.unwrap(),
        )

    # Pass-through reads

    async def find(self, predicate: ColumnElement[bool]) -> List[Base]:
        return await self.inner.find(predicate)

    async def first_or_default(self, predicate: ColumnElement[bool]) -> Optional[Base]:
        return await self.inner.first_or_default(predicate)

    async def exists(self, predicate: ColumnElement[bool]) -> bool:
        return await self.inner.exists(predicate)

    async def get_by_id_with_includes(self, id: UUID, *includes: Any) -> Optional[Base]:
        return await self.inner.get_by_id_with_includes(id, *includes)

    async def get_all_with_includes(self, *includes: Any) -> List[Base]:
        return await self.inner.get_all_with_includes(*includes)

    async def find_with_includes(
        self, predicate: ColumnElement[bool], *includes: Any
    ) -> List[Base]:
        return await self.inner.find_with_includes(predicate, *includes)

    # Writes

    async def add(self, entity: Base) -> Base:
        return await self.inner.add(entity)

    async def add_range(self, entities: Sequence[Base]) -> None:
        await self.inner.add_range(entities)

    async def update(self, entity: Base) -> Base:
        return await self.inner.update(entity)

    async def update_range(self, entities: Sequence[Base]) -> None:
        await self.inner.update_range(entities)

    async def remove(self, entity: Base) -> None:
        await self.inner.remove(entity)

    async def remove_range(self, entities: Sequence[Base]) -> None:
        await self.inner.remove_range(entities)

    async def remove_by_id(self, id: UUID) -> bool:
        """Delete by id and drop the entity's cached reads right away."""
        removed = await self.inner.remove_by_id(id)
        await self.cache.invalidate_tags([self.entity_tag(id), self.type_tag])
        return removed
