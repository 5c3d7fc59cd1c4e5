"""
Base Repository

Generic SQLAlchemy repository over an AsyncSession. Writes only stage
changes in the session; the unit of work flushes and commits them.
"""

from typing import Any, List, Optional, Sequence, Tuple, Type
from uuid import UUID

import structlog
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import ColumnElement

from ..constants import MAX_PAGE_SIZE
from ..models import Base
from .interfaces import Repository

logger = structlog.get_logger()


class BaseRepository(Repository):
    """
    Base repository shared by the entity repositories.

    NOTE: No generics; each subclass passes its model class.

    Errors from the database are logged with full context and re-raised
    unchanged.
    """

    def __init__(self, session: AsyncSession, model: Type[Base]):
        """
        Initialize repository with strict input validation.

        Args:
            session: AsyncSession for database operations
            model: SQLAlchemy model class

        Raises:
            TypeError: If session is not AsyncSession or model is invalid
        """
        if not isinstance(session, AsyncSession):
            raise TypeError(
                f"session must be AsyncSession instance, got {type(session).__name__}"
            )

        if not model or not hasattr(model, "__tablename__"):
            raise TypeError(
                f"model must be valid SQLAlchemy model with __tablename__, got {type(model).__name__}"
            )

        self.session = session
        self.model = model

    async def _scalars(self, stmt: Select, operation: str) -> List[Any]:
        try:
            result = await self.session.execute(stmt)
            entities = list(result.scalars().all())
            logger.debug(
                "Repository: Query executed",
                model=self.model.__name__,
                operation=operation,
                count=len(entities),
            )
            return entities

        except Exception as e:
            logger.error(
                "Repository: Query failed",
                model=self.model.__name__,
                operation=operation,
                error=str(e),
                exc_info=True,
            )
            raise  # Preserve full error context

    async def _scalar(self, stmt: Select, operation: str) -> Any:
        try:
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

        except Exception as e:
            logger.error(
                "Repository: Query failed",
                model=self.model.__name__,
                operation=operation,
                error=str(e),
                exc_info=True,
            )
            raise

    @staticmethod
    def _with_includes(stmt: Select, includes: Sequence[Any]) -> Select:
        for relationship in includes:
            stmt = stmt.options(selectinload(relationship))
        return stmt

    async def get_by_id(self, id: UUID) -> Optional[Base]:
        """
        Get entity by primary key.

        Raises:
            ValueError: If id is None
        """
        if id is None:
            raise ValueError("Entity id is required (cannot be None)")

        try:
            entity = await self.session.get(self.model, id)
            if entity:
                logger.debug(
                    "Repository: Entity retrieved",
                    model=self.model.__name__,
                    entity_id=str(id),
                )
            return entity

        except Exception as e:
            logger.error(
                "Repository: Failed to get entity",
                model=self.model.__name__,
                entity_id=str(id),
                error=str(e),
                exc_info=True,
            )
            raise

    async def get_all(self) -> List[Base]:
        return await self._scalars(select(self.model), "get_all")

    async def find(self, predicate: ColumnElement[bool]) -> List[Base]:
        return await self._scalars(select(self.model).where(predicate), "find")

    async def first_or_default(self, predicate: ColumnElement[bool]) -> Optional[Base]:
        entities = await self._scalars(
            select(self.model).where(predicate).limit(1), "first_or_default"
        )
        return entities[0] if entities else None

    async def exists(self, predicate: ColumnElement[bool]) -> bool:
        found = await self._scalar(
            select(select(self.model).where(predicate).exists()), "exists"
        )
        return bool(found)

    async def count(self, predicate: Optional[ColumnElement[bool]] = None) -> int:
        stmt = select(func.count()).select_from(self.model)
        if predicate is not None:
            stmt = stmt.where(predicate)
        return int(await self._scalar(stmt, "count") or 0)

    async def get_by_id_with_includes(self, id: UUID, *includes: Any) -> Optional[Base]:
        if id is None:
            raise ValueError("Entity id is required (cannot be None)")
        stmt = self._with_includes(select(self.model).where(self.model.id == id), includes)
        return await self._scalar(stmt, "get_by_id_with_includes")

    async def get_all_with_includes(self, *includes: Any) -> List[Base]:
        stmt = self._with_includes(select(self.model), includes)
        return await self._scalars(stmt, "get_all_with_includes")

    async def find_with_includes(
        self, predicate: ColumnElement[bool], *includes: Any
    ) -> List[Base]:
        stmt = self._with_includes(select(self.model).where(predicate), includes)
        return await self._scalars(stmt, "find_with_includes")

    async def get_paged(
        self,
        page_number: int,
        page_size: int,
        predicate: Optional[ColumnElement[bool]] = None,
        order_by: Optional[Any] = None,
        ascending: bool = True,
    ) -> Tuple[List[Base], int]:
        """
        Get one page of entities.

        Args:
            page_number: 1-based page index
            page_size: Entities per page (max 1000)
            predicate: Optional filter clause
            order_by: Column to sort by; primary key when omitted
            ascending: Sort direction

        Returns:
            (entities on the page, total matching entities)

        Raises:
            ValueError: If paging arguments are out of range
        """
        if page_number < 1:
            raise ValueError("page_number must be at least 1")
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

        total = await self.count(predicate)

        stmt = select(self.model)
        if predicate is not None:
            stmt = stmt.where(predicate)
        column = order_by if order_by is not None else self.model.id
        stmt = stmt.order_by(column.asc() if ascending else column.desc())
        stmt = stmt.offset((page_number - 1) * page_size).limit(page_size)

        return await self._scalars(stmt, "get_paged"), total

    async def add(self, entity: Base) -> Base:
        self.session.add(entity)
        logger.debug("Repository: Entity staged for insert", model=self.model.__name__)
        return entity

    async def add_range(self, entities: Sequence[Base]) -> None:
        self.session.add_all(list(entities))

    async def update(self, entity: Base) -> Base:
        """Stage an update; detached instances are merged into the session."""
        if entity in self.session:
            return entity
        return await self.session.merge(entity)

    async def update_range(self, entities: Sequence[Base]) -> None:
        for entity in entities:
            await self.update(entity)

    async def remove(self, entity: Base) -> None:
        if entity not in self.session:
            entity = await self.session.merge(entity)
        await self.session.delete(entity)

    async def remove_range(self, entities: Sequence[Base]) -> None:
        for entity in entities:
            await self.remove(entity)

    async def remove_by_id(self, id: UUID) -> bool:
        entity = await self.get_by_id(id)
        if entity is None:
            logger.debug(
                "Repository: Nothing to delete",
                model=self.model.__name__,
                entity_id=str(id),
            )
            return False

        await self.session.delete(entity)
        return True
