"""
Dispatch Domain Services

Stateless calculations over the geo value objects: great-circle distance
between two coordinates and the tiered delivery cost derived from it.
"""

import logging
import math

from ..constants import DEFAULT_CURRENCY, EARTH_RADIUS_KM, MAX_DISTANCE_KM, MIN_DISTANCE_KM
from .exceptions import DomainException
from .value_objects import Coordinate, DeliveryCost, Distance, distance_tier

logger = logging.getLogger(__name__)


class DistanceCalculationService:
    """
    Domain service for delivery distances.

    Uses the Haversine formula on a spherical Earth of radius 6371 km.
    """

    def __init__(self, earth_radius_km: float = EARTH_RADIUS_KM):
        self.earth_radius_km = earth_radius_km

    def great_circle_kilometers(self, origin: Coordinate, destination: Coordinate) -> float:
        """Raw Haversine distance without range validation."""
        lat1 = math.radians(origin.latitude)
        lat2 = math.radians(destination.latitude)
        d_lat = lat2 - lat1
        d_lon = math.radians(destination.longitude - origin.longitude)

        a = (
            math.sin(d_lat / 2) ** 2
            + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
        )
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        return self.earth_radius_km * c

    def calculate_distance(self, origin: Coordinate, destination: Coordinate) -> Distance:
        """
        Calculate the delivery distance between two coordinates.

        Args:
            origin: Pickup coordinate
            destination: Drop-off coordinate

        Returns:
            Distance rounded to 2 decimals

        Raises:
            DomainException: If the distance is below 1 km or above 1000 km
        """
        kilometers = self.great_circle_kilometers(origin, destination)

        if kilometers < MIN_DISTANCE_KM or kilometers > MAX_DISTANCE_KM:
            logger.info(
                f"Rejected delivery distance {kilometers:.2f} km between {origin} and {destination}"
            )
            raise DomainException(
                f"Distance must be between {MIN_DISTANCE_KM:g} and {MAX_DISTANCE_KM:g} km. "
                f"Calculated distance: {kilometers:.2f} km",
                error_code="DISTANCE_OUT_OF_RANGE",
                details={"kilometers": round(kilometers, 2)},
            )

        return Distance(kilometers)


class CostCalculationService:
    """Domain service mapping distances onto the delivery price tiers."""

    def __init__(self, currency: str = DEFAULT_CURRENCY):
        self.currency = currency

    def calculate_cost(self, distance: Distance) -> DeliveryCost:
        """Return the tier price for ``distance``.

        Raises:
            DomainException: If the distance lies outside every tier
        """
        return DeliveryCost.from_distance(distance, self.currency)

    def get_distance_interval(self, distance: Distance) -> str:
        """Return the interval label used for both pricing and reporting."""
        return distance_tier(distance.kilometers)[1]
