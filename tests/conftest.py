"""
Main pytest configuration for the dispatch manager tests.

Fixtures for an in-memory SQLite database, the process cache and units
of work bound to both.
"""

import os
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
import structlog

# Set test environment variables before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_LEVEL"] = "DEBUG"

from dispatch_manager.core.config import Settings
from dispatch_manager.core.database import DatabaseManager
from dispatch_manager.domain.value_objects import Coordinate, Quantity
from dispatch_manager.domain.services import (
    CostCalculationService,
    DistanceCalculationService,
)
from dispatch_manager.infrastructure.cache import MemoryCacheStore, TaggedMemoryCacheService
from dispatch_manager.models import Customer, Order, Product

structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(),
    ],
    context_class=dict,
    cache_logger_on_first_use=True,
)

# Bogotá and Medellín, roughly 240 km apart
BOGOTA = (4.7110, -74.0721)
MEDELLIN = (6.2442, -75.5812)
# Bogotá to a point about 20 km north
BOGOTA_NORTH = (4.8910, -74.0721)


class FakeClock:
    """Manually advanced monotonic clock for expiration tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Provide a controllable clock."""
    return FakeClock()


@pytest.fixture
def test_settings():
    """Settings pointing at a private in-memory database."""
    return Settings(DATABASE_URL="sqlite+aiosqlite://", ENVIRONMENT="test")


@pytest.fixture
def cache_service(clock):
    """Fresh cache service driven by the fake clock."""
    store = MemoryCacheStore(
        size_limit=100,
        compaction_percentage=0.25,
        expiration_scan_frequency=1.0,
        clock=clock,
    )
    return TaggedMemoryCacheService(
        store=store,
        default_absolute_expiration=1800,
        default_sliding_expiration=300,
        lock_stripes=8,
    )


@pytest_asyncio.fixture
async def database(test_settings):
    """Initialized database manager with the schema created."""
    manager = DatabaseManager(test_settings)
    await manager.initialize()
    await manager.create_schema()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def session(database):
    """Plain AsyncSession on the test database."""
    async with database.get_session() as session:
        yield session


@pytest_asyncio.fixture
async def uow(database, cache_service):
    """Cache-backed unit of work on the test database."""
    async with database.unit_of_work(cache_service) as unit_of_work:
        yield unit_of_work


def make_customer(name: str = "Ana Torres", email: str = None) -> Customer:
    return Customer.create(name, email or f"{uuid4().hex[:8]}@example.com", "+57 300 0000000")


def make_product(name: str = "Cement bag", unit_price: str = "25.50") -> Product:
    return Product.create(name, Decimal(unit_price), "bag", "50 kg bag")


def make_order(
    customer: Customer,
    product: Product,
    origin=BOGOTA,
    destination=MEDELLIN,
    quantity: int = 2,
) -> Order:
    origin_point = Coordinate(*origin)
    destination_point = Coordinate(*destination)
    distance = DistanceCalculationService().calculate_distance(origin_point, destination_point)
    cost = CostCalculationService().calculate_cost(distance)
    return Order.create(
        customer.id,
        product.id,
        Quantity(quantity),
        origin_point,
        destination_point,
        distance,
        cost,
    )


@pytest.fixture
def factories():
    """Entity builders shared by the database tests."""

    class Factories:
        customer = staticmethod(make_customer)
        product = staticmethod(make_product)
        order = staticmethod(make_order)
        bogota = BOGOTA
        medellin = MEDELLIN
        bogota_north = BOGOTA_NORTH

    return Factories
