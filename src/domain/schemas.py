# wire format shared by the table API and the sync client (camelCase JSON)

from typing import Generic, List, Optional, TypeVar

from pydantic import AwareDatetime, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from domain.models import Customer, CustomerStats, Order, OrderStatus, new_id


class TableData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    updated_at: Optional[AwareDatetime] = None
    version: Optional[str] = None
    deleted: bool = False

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class OrderData(TableData):
    created_at: AwareDatetime
    status: OrderStatus
    assigned_user_id: Optional[str] = None
    customer_id: str

    @classmethod
    def from_model(cls, order: Order) -> "OrderData":
        return cls(
            id=order.id,
            updated_at=order.updated_at,
            version=order.version,
            deleted=order.deleted,
            created_at=order.created_at,
            status=order.status,
            assigned_user_id=order.assigned_user_id,
            customer_id=order.customer_id,
        )

    def to_model(self) -> Order:
        return Order(
            id=self.id or new_id(),
            customer_id=self.customer_id,
            created_at=self.created_at,
            status=self.status,
            assigned_user_id=self.assigned_user_id,
            updated_at=self.updated_at,
            version=self.version,
            deleted=self.deleted,
        )


class CustomerData(TableData):
    name: str
    street_and_number: str
    postal_code: int
    city: str

    @classmethod
    def from_model(cls, customer: Customer) -> "CustomerData":
        return cls(
            id=customer.id,
            updated_at=customer.updated_at,
            version=customer.version,
            deleted=customer.deleted,
            name=customer.name,
            street_and_number=customer.street_and_number,
            postal_code=customer.postal_code,
            city=customer.city,
        )

    def to_model(self) -> Customer:
        return Customer(
            id=self.id or new_id(),
            name=self.name,
            street_and_number=self.street_and_number,
            postal_code=self.postal_code,
            city=self.city,
            updated_at=self.updated_at,
            version=self.version,
            deleted=self.deleted,
        )


class CustomerStatsData(TableData):
    customer_id: str
    orders_created_in_this_month: int
    worker_count_for_orders: int

    @classmethod
    def from_model(cls, stats: CustomerStats) -> "CustomerStatsData":
        return cls(
            id=stats.id,
            updated_at=stats.updated_at,
            version=stats.version,
            deleted=stats.deleted,
            customer_id=stats.customer_id,
            orders_created_in_this_month=stats.orders_created_in_this_month,
            worker_count_for_orders=stats.worker_count_for_orders,
        )

    def to_model(self) -> CustomerStats:
        return CustomerStats(
            id=self.id or self.customer_id,
            customer_id=self.customer_id,
            orders_created_in_this_month=self.orders_created_in_this_month,
            worker_count_for_orders=self.worker_count_for_orders,
            updated_at=self.updated_at,
            version=self.version,
            deleted=self.deleted,
        )


T = TypeVar("T", bound=TableData)


class Page(BaseModel, Generic[T]):
    items: List[T]
    count: int


# endpoint name -> wire schema
SCHEMAS = {
    "orders": OrderData,
    "customers": CustomerData,
    "inmemorycustomerstats": CustomerStatsData,
}
