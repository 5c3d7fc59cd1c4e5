"""
Dispatch Value Objects

Immutable value objects for the geo and pricing domain.
Every constructor validates its input and raises DomainException on
violation, so an instance that exists is always valid.
"""

import functools
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Tuple, Union

from ..constants import (
    COORDINATE_TOLERANCE,
    DEFAULT_CURRENCY,
    DISTANCE_TIERS,
    DISTANCE_TOLERANCE_KM,
    MAX_DISTANCE_KM,
    MIN_DISTANCE_KM,
)
from .exceptions import DomainException

_CENTS = Decimal("0.01")


def distance_tier(kilometers: float) -> Tuple[float, str, Decimal]:
    """Return the (upper bound, label, cost) tier containing ``kilometers``.

    Tiers are ``(previous bound, bound]`` with the first one starting at the
    minimum distance, so the intervals leave no gaps and never overlap.

    Raises:
        DomainException: If the value is outside every tier
    """
    if kilometers < MIN_DISTANCE_KM:
        raise DomainException(
            f"Distance {kilometers} km is below the minimum of {MIN_DISTANCE_KM} km",
            error_code="DISTANCE_OUT_OF_RANGE",
        )
    for tier in DISTANCE_TIERS:
        if kilometers <= tier[0]:
            return tier
    raise DomainException(
        f"Distance {kilometers} km exceeds the maximum of {MAX_DISTANCE_KM} km",
        error_code="DISTANCE_OUT_OF_RANGE",
    )


@dataclass(frozen=True, eq=False)
class Coordinate:
    """
    Geographic point in decimal degrees.

    Two coordinates are equal when both axes differ by less than 0.0001
    degrees (roughly 11 m).
    """

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        """Validate coordinate ranges."""
        if not -90.0 <= self.latitude <= 90.0:
            raise DomainException(
                "Latitude must be between -90 and 90 degrees",
                error_code="INVALID_COORDINATE",
                details={"latitude": self.latitude},
            )
        if not -180.0 <= self.longitude <= 180.0:
            raise DomainException(
                "Longitude must be between -180 and 180 degrees",
                error_code="INVALID_COORDINATE",
                details={"longitude": self.longitude},
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Coordinate):
            return NotImplemented
        return (
            abs(self.latitude - other.latitude) < COORDINATE_TOLERANCE
            and abs(self.longitude - other.longitude) < COORDINATE_TOLERANCE
        )

    def __hash__(self) -> int:
        return hash((round(self.latitude, 4), round(self.longitude, 4)))

    def __str__(self) -> str:
        return f"({self.latitude:.6f}, {self.longitude:.6f})"


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Distance:
    """
    Great-circle delivery distance in kilometers.

    Valid range is 1 to 1000 km; the value is kept rounded to 2 decimals.
    """

    kilometers: float

    def __post_init__(self) -> None:
        """Validate range, then normalize to 2 decimals."""
        if not MIN_DISTANCE_KM <= self.kilometers <= MAX_DISTANCE_KM:
            raise DomainException(
                f"Distance must be between {MIN_DISTANCE_KM:g} and {MAX_DISTANCE_KM:g} km",
                error_code="DISTANCE_OUT_OF_RANGE",
                details={"kilometers": self.kilometers},
            )
        object.__setattr__(self, "kilometers", round(float(self.kilometers), 2))

    @property
    def cost_interval(self) -> str:
        """Label of the pricing interval this distance falls into."""
        return distance_tier(self.kilometers)[1]

    def is_in_range(self, minimum: float, maximum: float) -> bool:
        return minimum <= self.kilometers <= maximum

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Distance):
            return NotImplemented
        return abs(self.kilometers - other.kilometers) < DISTANCE_TOLERANCE_KM

    def __lt__(self, other: "Distance") -> bool:
        if not isinstance(other, Distance):
            return NotImplemented
        return self.kilometers < other.kilometers and self != other

    def __hash__(self) -> int:
        return hash(self.kilometers)

    def __str__(self) -> str:
        return f"{self.kilometers:.2f} km"


@dataclass(frozen=True)
class DeliveryCost:
    """Non-negative delivery price in a given currency."""

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        """Validate and normalize amount and currency."""
        try:
            amount = Decimal(str(self.amount)).quantize(_CENTS, rounding=ROUND_HALF_UP)
        except (InvalidOperation, ValueError) as e:
            raise DomainException(
                f"Invalid cost amount: {self.amount!r}", error_code="INVALID_COST"
            ) from e
        if amount < 0:
            raise DomainException(
                "Cost amount cannot be negative",
                error_code="INVALID_COST",
                details={"amount": str(amount)},
            )
        if not self.currency or len(self.currency) != 3 or not self.currency.isalpha():
            raise DomainException(
                "Currency must be a 3-letter code",
                error_code="INVALID_COST",
                details={"currency": self.currency},
            )
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def from_distance(
        cls, distance: Distance, currency: str = DEFAULT_CURRENCY
    ) -> "DeliveryCost":
        """Price a delivery using the distance tier table."""
        return cls(distance_tier(distance.kilometers)[2], currency)

    def apply_discount(self, percentage: Union[int, float, Decimal]) -> "DeliveryCost":
        """Return a new cost reduced by ``percentage`` (0-100)."""
        discount = Decimal(str(percentage))
        if discount < 0 or discount > 100:
            raise DomainException(
                "Discount percentage must be between 0 and 100",
                error_code="INVALID_DISCOUNT",
                details={"percentage": str(discount)},
            )
        return DeliveryCost(self.amount * (Decimal(100) - discount) / Decimal(100), self.currency)

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


@dataclass(frozen=True)
class Quantity:
    """Positive number of product units in an order."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise DomainException(
                "Quantity must be an integer", error_code="INVALID_QUANTITY"
            )
        if self.value <= 0:
            raise DomainException(
                "Quantity must be greater than zero",
                error_code="INVALID_QUANTITY",
                details={"value": self.value},
            )

    def add(self, amount: int) -> "Quantity":
        if amount <= 0:
            raise DomainException(
                "Amount to add must be positive", error_code="INVALID_QUANTITY"
            )
        return Quantity(self.value + amount)

    def subtract(self, amount: int) -> "Quantity":
        """Return a smaller quantity; the result must stay positive."""
        if amount <= 0:
            raise DomainException(
                "Amount to subtract must be positive", error_code="INVALID_QUANTITY"
            )
        if self.value - amount <= 0:
            raise DomainException(
                "Resulting quantity must be greater than zero",
                error_code="INVALID_QUANTITY",
                details={"value": self.value, "amount": amount},
            )
        return Quantity(self.value - amount)

    def __int__(self) -> int:
        return self.value
