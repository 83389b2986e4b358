from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Set

from domain.models import Customer, CustomerStats, Order


def month_start(now: datetime) -> datetime:
    """Midnight on the first day of `now`'s month, in `now`'s timezone."""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def compute_customer_stats(
    customers: Iterable[Customer], orders: Iterable[Order], now: datetime
) -> List[CustomerStats]:
    """
    Build the stats projection from the current customers and orders.

    - orders_created_in_this_month: orders created strictly after the start
      of the current month
    - worker_count_for_orders: distinct assigned users over all the
      customer's orders (unassigned orders don't count)

    Soft-deleted orders are included in both figures.
    """
    begin = month_start(now)
    created_this_month: Dict[str, int] = defaultdict(int)
    workers: Dict[str, Set[str]] = defaultdict(set)

    for order in orders:
        if order.created_at > begin:
            created_this_month[order.customer_id] += 1
        if order.assigned_user_id is not None:
            workers[order.customer_id].add(order.assigned_user_id)

    return [
        CustomerStats(
            id=c.id,
            customer_id=c.id,
            orders_created_in_this_month=created_this_month[c.id],
            worker_count_for_orders=len(workers[c.id]),
            updated_at=now,
        )
        for c in customers
    ]
