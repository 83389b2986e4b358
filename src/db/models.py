# read models for the worklist, built from the local mirror

from dataclasses import dataclass
from typing import Optional

from domain.models import Order


@dataclass(frozen=True)
class WorklistEntry:
    order: Order
    customer_name: Optional[str]  # None until the customer has been pulled
    orders_created_in_this_month: Optional[int]
    worker_count_for_orders: Optional[int]
