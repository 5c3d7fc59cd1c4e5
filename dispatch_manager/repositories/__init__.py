"""
Repository Layer

SQLAlchemy repositories, their cached decorators and the
cache-invalidating unit of work.
"""

from .base import BaseRepository
from .customer import SqlAlchemyCustomerRepository
from .exceptions import ConcurrencyConflictError, PersistenceError, TransactionStateError
from .order import SqlAlchemyOrderRepository
from .product import SqlAlchemyProductRepository
from .unit_of_work import UnitOfWork

__all__ = [
    "BaseRepository",
    "SqlAlchemyOrderRepository",
    "SqlAlchemyCustomerRepository",
    "SqlAlchemyProductRepository",
    "UnitOfWork",
    "PersistenceError",
    "ConcurrencyConflictError",
    "TransactionStateError",
]
