"""
Campus Delivery: Order status state machine

pending → accepted → preparing → ready → out-for-delivery → delivered
Any non-terminal state may also move to cancelled. delivered and cancelled
are terminal.
"""
from enum import Enum

from campus_delivery.core.errors import ConflictFailure, ValidationFailure


class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING:          frozenset({OrderStatus.ACCEPTED, OrderStatus.CANCELLED}),
    OrderStatus.ACCEPTED:         frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING:        frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY:            frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED:        frozenset(),
    OrderStatus.CANCELLED:        frozenset(),
}


def parse_status(value: str | None) -> OrderStatus:
    """Orders stored without a status are pending."""
    if not value:
        return OrderStatus.PENDING
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationFailure(f"Unknown order status '{value}'.")


def is_terminal(status: OrderStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target == current or target in ALLOWED_TRANSITIONS[current]


def validate_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """
    Raise ConflictFailure for an illegal move. Returns False when the write is
    a no-op (target equals current), True when it must be applied.
    """
    if target == current:
        return False
    if is_terminal(current):
        raise ConflictFailure(f"Order is already {current.value} and can no longer change.")
    if not can_transition(current, target):
        allowed = ", ".join(sorted(s.value for s in ALLOWED_TRANSITIONS[current]))
        raise ConflictFailure(
            f"Cannot move order from '{current.value}' to '{target.value}' (allowed: {allowed})."
        )
    return True
