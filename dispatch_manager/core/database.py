"""
Dispatch Manager Database Configuration

Async database connection management with:
- Engine creation retried with exponential backoff
- Session factory tuned for the unit of work (no autoflush, no expiry on commit)
- Unit-of-work scopes bound to the process cache
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..domain.cache.interfaces import CacheService
from ..models import Base
from ..repositories.cached import CacheExpirationPolicy
from ..repositories.unit_of_work import UnitOfWork
from .config import Settings, get_settings

logger = structlog.get_logger()


class DatabaseManager:
    """
    Database connection manager.

    Owns the async engine and session factory; hands out sessions and
    units of work.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    def _engine_options(self) -> dict:
        if self.settings.uses_sqlite:
            # One shared connection so in-memory databases survive across sessions
            return {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
                "echo": self.settings.DATABASE_ECHO,
            }
        return {
            "pool_size": self.settings.DATABASE_POOL_SIZE,
            "max_overflow": self.settings.DATABASE_MAX_OVERFLOW,
            "pool_timeout": self.settings.DATABASE_POOL_TIMEOUT,
            "pool_recycle": self.settings.DATABASE_POOL_RECYCLE,
            "pool_pre_ping": True,
            "echo": self.settings.DATABASE_ECHO,
        }

    async def _create_engine(self) -> AsyncEngine:
        """Create the engine and prove it can connect."""
        start_time = time.time()
        engine = create_async_engine(self.settings.DATABASE_URL, **self._engine_options())
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            await engine.dispose()
            raise

        logger.info(
            "Database engine created successfully",
            duration_seconds=time.time() - start_time,
            sqlite=self.settings.uses_sqlite,
        )
        return engine

    async def initialize(self) -> None:
        """Initialize database connection with retry."""
        if self.engine is not None:
            return

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.settings.DATABASE_CONNECT_RETRIES),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception_type((ConnectionError, OSError)),
                before_sleep=lambda retry_state: logger.warning(
                    "Database connection retry",
                    attempt=retry_state.attempt_number,
                    wait_time=retry_state.next_action.sleep,
                ),
                reraise=True,
            ):
                with attempt:
                    self.engine = await self._create_engine()

            self.session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.info("Database initialized successfully")

        except Exception as e:
            logger.error("Database initialization failed", error=str(e), exc_info=True)
            raise

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        if not self.engine:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured", tables=sorted(Base.metadata.tables))

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session; the caller decides when to commit."""
        if not self.session_factory:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        async with self.session_factory() as session:
            yield session

    @asynccontextmanager
    async def unit_of_work(
        self, cache_service: Optional[CacheService] = None
    ) -> AsyncGenerator[UnitOfWork, None]:
        """
        Yield a unit of work over a fresh session.

        Args:
            cache_service: Process cache; repositories are cached when given
        """
        if not self.session_factory:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        policy = CacheExpirationPolicy.from_settings(self.settings)
        async with UnitOfWork(self.session_factory(), cache_service, policy) as uow:
            yield uow

    async def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self.engine:
            await self.engine.dispose()
            logger.info("Database connections closed")
        self.engine = None
        self.session_factory = None
