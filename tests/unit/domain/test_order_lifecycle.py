"""
Unit tests for the order status lifecycle and the entity factories.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from dispatch_manager.domain.exceptions import (
    DomainException,
    InvalidStatusTransitionException,
)
from dispatch_manager.domain.order_status import (
    OrderStatus,
    allowed_transitions,
    can_transition,
    ensure_transition,
    is_terminal,
)
from dispatch_manager.domain.value_objects import (
    Coordinate,
    DeliveryCost,
    Distance,
    Quantity,
)
from dispatch_manager.models import EMPTY_ID, Customer, Order, Product

ALLOWED = {
    (OrderStatus.CREATED, OrderStatus.IN_PROGRESS),
    (OrderStatus.CREATED, OrderStatus.CANCELLED),
    (OrderStatus.IN_PROGRESS, OrderStatus.SENDING),
    (OrderStatus.IN_PROGRESS, OrderStatus.DELIVERED),
    (OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED),
    (OrderStatus.SENDING, OrderStatus.DELIVERED),
}

ALL_PAIRS = [(current, new) for current in OrderStatus for new in OrderStatus]


def build_order(status: OrderStatus = OrderStatus.CREATED) -> Order:
    order = Order.create(
        uuid4(),
        uuid4(),
        Quantity(1),
        Coordinate(4.7110, -74.0721),
        Coordinate(4.8910, -74.0721),
        Distance(20.01),
        DeliveryCost(Decimal("100")),
    )
    order.status = status
    return order


class TestTransitionTable:
    """Test the closed transition table."""

    @pytest.mark.parametrize("current,new", ALL_PAIRS)
    def test_can_transition_matches_table(self, current, new):
        """Test every (current, new) pair against the allowed set."""
        assert can_transition(current, new) == ((current, new) in ALLOWED)

    @pytest.mark.parametrize("status", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    def test_terminal_statuses(self, status):
        """Test Delivered and Cancelled allow nothing."""
        assert is_terminal(status)
        assert allowed_transitions(status) == frozenset()

    def test_self_transition_not_allowed(self):
        """Test staying in the same status is not a transition."""
        for status in OrderStatus:
            assert not can_transition(status, status)

    def test_ensure_transition_error(self):
        """Test the rejection message names both statuses."""
        with pytest.raises(InvalidStatusTransitionException) as exc_info:
            ensure_transition(OrderStatus.DELIVERED, OrderStatus.CREATED)

        assert str(exc_info.value) == "Cannot transition from delivered to created"
        assert exc_info.value.error_code == "INVALID_STATUS_TRANSITION"

    def test_string_values_accepted(self):
        """Test statuses may be passed by value."""
        assert ensure_transition("created", "in_progress") is OrderStatus.IN_PROGRESS


class TestOrderEntity:
    """Test Order factory and status updates."""

    def test_create_defaults(self):
        """Test a new order starts in Created with fixed distance and cost."""
        order = build_order()

        assert order.status is OrderStatus.CREATED
        assert order.distance == Distance(20.01)
        assert order.cost == DeliveryCost(Decimal("100.00"))
        assert order.order_quantity == Quantity(1)
        assert order.created_at is not None
        assert order.updated_at is None

    def test_create_rejects_same_points(self):
        """Test origin and destination must differ."""
        point = Coordinate(4.7110, -74.0721)

        with pytest.raises(DomainException) as exc_info:
            Order.create(
                uuid4(),
                uuid4(),
                Quantity(1),
                point,
                Coordinate(4.71105, -74.07205),
                Distance(1.0),
                DeliveryCost(Decimal("100")),
            )

        assert exc_info.value.error_code == "SAME_ORIGIN_DESTINATION"

    @pytest.mark.parametrize("customer_id,product_id", [(EMPTY_ID, uuid4()), (uuid4(), None)])
    def test_create_requires_ids(self, customer_id, product_id):
        """Test empty ids are rejected."""
        with pytest.raises(DomainException):
            Order.create(
                customer_id,
                product_id,
                Quantity(1),
                Coordinate(0.0, 0.0),
                Coordinate(0.5, 0.0),
                Distance(55.6),
                DeliveryCost(Decimal("300")),
            )

    def test_full_lifecycle(self):
        """Test Created -> InProgress -> Sending -> Delivered."""
        order = build_order()

        for status in (OrderStatus.IN_PROGRESS, OrderStatus.SENDING, OrderStatus.DELIVERED):
            order.update_status(status)
            assert order.status is status

        assert order.updated_at is not None

    @pytest.mark.parametrize(
        "current,new",
        [(c, n) for c, n in ALL_PAIRS if (c, n) not in ALLOWED],
    )
    def test_rejected_transition_leaves_order_unchanged(self, current, new):
        """Test a disallowed transition raises and keeps the status."""
        order = build_order(current)

        with pytest.raises(InvalidStatusTransitionException):
            order.update_status(new)

        assert order.status is current
        assert order.updated_at is None


class TestCustomerAndProduct:
    """Test customer and product factories."""

    def test_customer_email_lower_cased(self):
        """Test e-mails are normalized."""
        customer = Customer.create("Ana Torres", "  Ana@Example.COM ", "+57 300")

        assert customer.email == "ana@example.com"
        assert customer.id is not None

    @pytest.mark.parametrize(
        "name,email,phone",
        [("", "a@b.co", "1"), ("Ana", "not-an-email", "1"), ("Ana", "a@b.co", " ")],
    )
    def test_customer_validation(self, name, email, phone):
        """Test required fields and e-mail format."""
        with pytest.raises(DomainException):
            Customer.create(name, email, phone)

    def test_update_contact_info(self):
        """Test contact updates normalize and stamp updated_at."""
        customer = Customer.create("Ana Torres", "ana@example.com", "1")
        customer.update_contact_info("NEW@example.com", "2")

        assert customer.email == "new@example.com"
        assert customer.phone == "2"
        assert customer.updated_at is not None

    def test_product_price_validation(self):
        """Test negative prices are rejected."""
        with pytest.raises(DomainException):
            Product.create("Sand", Decimal("-1"), "kg")

        product = Product.create("Sand", Decimal("3.20"), "kg")
        product.update_price(Decimal("4.00"))

        assert product.unit_price == Decimal("4.00")
        assert product.description == ""
