"""
Dispatch Manager Database Models

SQLAlchemy models for customers, products and orders. The models carry
their own domain behaviour (factories, validation, status lifecycle) and
expose the geo/pricing value objects over their flat columns.
"""

import re
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..constants import DEFAULT_CURRENCY, get_current_timestamp
from ..domain.exceptions import DomainException
from ..domain.order_status import OrderStatus, ensure_transition
from ..domain.value_objects import Coordinate, DeliveryCost, Distance, Quantity

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
EMPTY_ID = uuid.UUID(int=0)


class Base(DeclarativeBase):
    """Canonical Base class for all database models."""

    pass


class TimestampMixin:
    """Mixin for timestamp fields."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=get_current_timestamp, nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


def _require_text(value: Optional[str], field_name: str, max_length: int) -> str:
    text = (value or "").strip()
    if not text:
        raise DomainException(
            f"{field_name} is required", error_code="INVALID_FIELD", details={"field": field_name}
        )
    if len(text) > max_length:
        raise DomainException(
            f"{field_name} cannot exceed {max_length} characters",
            error_code="INVALID_FIELD",
            details={"field": field_name},
        )
    return text


def _normalize_email(email: Optional[str]) -> str:
    normalized = _require_text(email, "Email", 255).lower()
    if not EMAIL_PATTERN.match(normalized):
        raise DomainException(
            "Invalid email format", error_code="INVALID_FIELD", details={"field": "Email"}
        )
    return normalized


class Customer(Base, TimestampMixin):
    """Customer placing dispatch orders."""

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)

    orders: Mapped[list["Order"]] = relationship("Order", back_populates="customer")

    @classmethod
    def create(cls, name: str, email: str, phone: str) -> "Customer":
        """Create a validated customer with a lower-cased e-mail."""
        return cls(
            id=uuid.uuid4(),
            name=_require_text(name, "Name", 200),
            email=_normalize_email(email),
            phone=_require_text(phone, "Phone", 50),
            created_at=get_current_timestamp(),
        )

    def update_contact_info(self, email: str, phone: str) -> None:
        normalized_email = _normalize_email(email)
        normalized_phone = _require_text(phone, "Phone", 50)
        self.email = normalized_email
        self.phone = normalized_phone
        self.updated_at = get_current_timestamp()

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, email='{self.email}')>"


class Product(Base, TimestampMixin):
    """Deliverable product with a unit price."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)

    orders: Mapped[list["Order"]] = relationship("Order", back_populates="product")

    __table_args__ = (CheckConstraint("unit_price >= 0", name="check_unit_price"),)

    @staticmethod
    def _validate_price(unit_price: Decimal) -> Decimal:
        price = Decimal(str(unit_price))
        if price < 0:
            raise DomainException(
                "Unit price cannot be negative",
                error_code="INVALID_FIELD",
                details={"field": "UnitPrice"},
            )
        return price

    @classmethod
    def create(
        cls, name: str, unit_price: Decimal, unit: str, description: Optional[str] = None
    ) -> "Product":
        return cls(
            id=uuid.uuid4(),
            name=_require_text(name, "Name", 200),
            description=(description or "").strip(),
            unit_price=cls._validate_price(unit_price),
            unit=_require_text(unit, "Unit", 20),
            created_at=get_current_timestamp(),
        )

    def update_price(self, unit_price: Decimal) -> None:
        self.unit_price = self._validate_price(unit_price)
        self.updated_at = get_current_timestamp()

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}')>"


class Order(Base, TimestampMixin):
    """
    Dispatch order.

    Distance and cost are fixed when the order is created; afterwards only
    the status (and ``updated_at``) changes. ``version_id`` provides
    optimistic concurrency: a stale update raises StaleDataError on flush.
    """

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customers.id"), nullable=False, index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    origin_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    origin_longitude: Mapped[float] = mapped_column(Float, nullable=False)
    destination_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    destination_longitude: Mapped[float] = mapped_column(Float, nullable=False)
    distance_km: Mapped[float] = mapped_column(Float, nullable=False)
    cost_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    cost_currency: Mapped[str] = mapped_column(
        String(3), default=DEFAULT_CURRENCY, nullable=False
    )
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, name="order_status"),
        default=OrderStatus.CREATED,
        nullable=False,
        index=True,
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    customer: Mapped["Customer"] = relationship("Customer", back_populates="orders")
    product: Mapped["Product"] = relationship("Product", back_populates="orders")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_quantity_positive"),
        CheckConstraint(
            "distance_km >= 1 AND distance_km <= 1000", name="check_distance_range"
        ),
        CheckConstraint("cost_amount >= 0", name="check_cost_non_negative"),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @classmethod
    def create(
        cls,
        customer_id: uuid.UUID,
        product_id: uuid.UUID,
        quantity: Quantity,
        origin: Coordinate,
        destination: Coordinate,
        distance: Distance,
        cost: DeliveryCost,
    ) -> "Order":
        """
        Create a new order in the Created status.

        Raises:
            DomainException: If an id is missing or origin equals destination
        """
        if not customer_id or customer_id == EMPTY_ID:
            raise DomainException("Customer ID is required", error_code="INVALID_FIELD")
        if not product_id or product_id == EMPTY_ID:
            raise DomainException("Product ID is required", error_code="INVALID_FIELD")
        if origin == destination:
            raise DomainException(
                "Origin and destination cannot be the same",
                error_code="SAME_ORIGIN_DESTINATION",
            )

        return cls(
            id=uuid.uuid4(),
            customer_id=customer_id,
            product_id=product_id,
            quantity=quantity.value,
            origin_latitude=origin.latitude,
            origin_longitude=origin.longitude,
            destination_latitude=destination.latitude,
            destination_longitude=destination.longitude,
            distance_km=distance.kilometers,
            cost_amount=cost.amount,
            cost_currency=cost.currency,
            status=OrderStatus.CREATED,
            created_at=get_current_timestamp(),
        )

    @property
    def origin(self) -> Coordinate:
        return Coordinate(self.origin_latitude, self.origin_longitude)

    @property
    def destination(self) -> Coordinate:
        return Coordinate(self.destination_latitude, self.destination_longitude)

    @property
    def distance(self) -> Distance:
        return Distance(self.distance_km)

    @property
    def cost(self) -> DeliveryCost:
        return DeliveryCost(self.cost_amount, self.cost_currency)

    @property
    def order_quantity(self) -> Quantity:
        return Quantity(self.quantity)

    def update_status(self, new_status: OrderStatus) -> None:
        """
        Move the order to ``new_status``.

        Raises:
            InvalidStatusTransitionException: If the transition is not allowed;
                the order is left unchanged
        """
        self.status = ensure_transition(self.status, new_status)
        self.updated_at = get_current_timestamp()

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, status='{self.status.value}')>"
