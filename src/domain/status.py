from dataclasses import replace
from typing import FrozenSet, Optional, Tuple

from domain.models import Order, OrderStatus

# the only legal status changes; anything else is refused
TRANSITIONS: FrozenSet[Tuple[OrderStatus, OrderStatus]] = frozenset(
    {
        (OrderStatus.READY, OrderStatus.DELIVERED),
        (OrderStatus.READY, OrderStatus.CANCELLED),
    }
)

TERMINAL: FrozenSet[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return (current, target) in TRANSITIONS


def transition(order: Order, target: OrderStatus) -> Optional[Order]:
    """
    Move an order to `target`.
    Returns the updated order, or None if the move is not allowed
    (the order is left as it was).
    """
    if not can_transition(order.status, target):
        return None
    return replace(order, status=target)


def complete(order: Order) -> Optional[Order]:
    return transition(order, OrderStatus.DELIVERED)


def cancel(order: Order) -> Optional[Order]:
    return transition(order, OrderStatus.CANCELLED)
