# shared entity dataclasses, used by both the server and the worker client

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, Optional

from ulid import ULID


class OrderStatus(IntEnum):
    READY = 1
    DELIVERED = 2
    CANCELLED = 3


def new_id() -> str:
    """Time-ordered unique identifier for a new entity."""
    return str(ULID())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_db_time(value: Optional[datetime]) -> Optional[str]:
    """
    Render an aware datetime as a UTC ISO string with fixed precision,
    so that string comparison in SQL matches time order.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        raise ValueError(f"naive datetime not allowed: {value!r}")
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class User:
    id: str
    user_name: str


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    street_and_number: str
    postal_code: int
    city: str
    updated_at: Optional[datetime] = None
    version: Optional[str] = None
    deleted: bool = False

    @classmethod
    def from_row(cls, row) -> "Customer":
        return cls(
            id=row["id"],
            name=row["name"],
            street_and_number=row["street_and_number"],
            postal_code=int(row["postal_code"]),
            city=row["city"],
            updated_at=from_db_time(row["updated_at"]),
            version=row["version"],
            deleted=bool(row["deleted"]),
        )

    def as_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "street_and_number": self.street_and_number,
            "postal_code": self.postal_code,
            "city": self.city,
            "updated_at": to_db_time(self.updated_at),
            "version": self.version,
            "deleted": int(self.deleted),
        }


@dataclass(frozen=True)
class Order:
    id: str
    customer_id: str
    created_at: datetime
    status: OrderStatus
    assigned_user_id: Optional[str] = None
    updated_at: Optional[datetime] = None
    version: Optional[str] = None
    deleted: bool = False

    @classmethod
    def from_row(cls, row) -> "Order":
        return cls(
            id=row["id"],
            customer_id=row["customer_id"],
            created_at=from_db_time(row["created_at"]),
            status=OrderStatus(row["status"]),
            assigned_user_id=row["assigned_user_id"],
            updated_at=from_db_time(row["updated_at"]),
            version=row["version"],
            deleted=bool(row["deleted"]),
        )

    def as_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "created_at": to_db_time(self.created_at),
            "status": int(self.status),
            "assigned_user_id": self.assigned_user_id,
            "updated_at": to_db_time(self.updated_at),
            "version": self.version,
            "deleted": int(self.deleted),
        }


@dataclass(frozen=True)
class CustomerStats:
    """Per-customer monthly figures. Derived, never written by clients."""

    id: str
    customer_id: str
    orders_created_in_this_month: int
    worker_count_for_orders: int
    updated_at: Optional[datetime] = None
    version: Optional[str] = None
    deleted: bool = False

    @classmethod
    def from_row(cls, row) -> "CustomerStats":
        return cls(
            id=row["id"],
            customer_id=row["customer_id"],
            orders_created_in_this_month=int(row["orders_created_in_this_month"]),
            worker_count_for_orders=int(row["worker_count_for_orders"]),
            updated_at=from_db_time(row["updated_at"]),
            version=row["version"],
            deleted=bool(row["deleted"]),
        )

    def as_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "orders_created_in_this_month": self.orders_created_in_this_month,
            "worker_count_for_orders": self.worker_count_for_orders,
            "updated_at": to_db_time(self.updated_at),
            "version": self.version,
            "deleted": int(self.deleted),
        }
