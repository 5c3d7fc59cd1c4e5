"""
Dispatch Domain

Value objects, domain services and the order status lifecycle.
"""

from .exceptions import DomainException
from .order_status import OrderStatus
from .services import CostCalculationService, DistanceCalculationService
from .value_objects import Coordinate, DeliveryCost, Distance, Quantity

__all__ = [
    "DomainException",
    "OrderStatus",
    "Coordinate",
    "Distance",
    "DeliveryCost",
    "Quantity",
    "DistanceCalculationService",
    "CostCalculationService",
]
