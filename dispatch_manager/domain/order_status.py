"""
Order Status Lifecycle

The status enumeration and the closed transition table orders move through.
Delivered and Cancelled are terminal.
"""

from enum import Enum
from typing import Dict, FrozenSet

from .exceptions import InvalidStatusTransitionException


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    CREATED = "created"
    IN_PROGRESS = "in_progress"
    SENDING = "sending"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.CREATED: frozenset({OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED}),
    OrderStatus.IN_PROGRESS: frozenset(
        {OrderStatus.SENDING, OrderStatus.DELIVERED, OrderStatus.CANCELLED}
    ),
    OrderStatus.SENDING: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Statuses that still need dispatcher attention
OPEN_STATUSES: FrozenSet[OrderStatus] = frozenset(
    {OrderStatus.CREATED, OrderStatus.IN_PROGRESS}
)


def allowed_transitions(current: OrderStatus) -> FrozenSet[OrderStatus]:
    """Return the statuses reachable from ``current`` in one step."""
    return ALLOWED_TRANSITIONS[OrderStatus(current)]


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """Check whether ``current -> new`` is in the transition table."""
    return OrderStatus(new) in allowed_transitions(current)


def is_terminal(status: OrderStatus) -> bool:
    return not allowed_transitions(status)


def ensure_transition(current: OrderStatus, new: OrderStatus) -> OrderStatus:
    """Validate ``current -> new`` and return the new status.

    Raises:
        InvalidStatusTransitionException: If the transition is not allowed
    """
    if not can_transition(current, new):
        raise InvalidStatusTransitionException(
            OrderStatus(current).value, OrderStatus(new).value
        )
    return OrderStatus(new)
