"""Delivery Rules — driver-facing filters and dashboard counts over orders.

Invariants:
    - A driver only ever sees orders whose driver_id is their own id
    - Search matches order_number or customer_name, case-insensitive substring
    - A filter field left as None does not constrain the result
    - Availability is not an order attribute: nothing here reads or writes it

Design Decisions:
    - Same rules on both sides: the backend filters with them for
      GET /driver/deliveries, and tests exercise them without IO
"""

from dataclasses import dataclass
from datetime import date

from fulfillment.core.domain_types import ActorId, OrderStatus
from fulfillment.core.order import Order


@dataclass(frozen=True)
class DeliveryFilter:
    delivery_date: date | None = None
    status: OrderStatus | None = None
    search: str | None = None

    def to_params(self) -> dict[str, str]:
        """Query parameters for GET /driver/deliveries."""
        params: dict[str, str] = {}
        if self.delivery_date is not None:
            params["date"] = self.delivery_date.isoformat()
        if self.status is not None:
            params["status"] = self.status.value
        if self.search:
            params["search"] = self.search
        return params


@dataclass(frozen=True)
class DeliverySummary:
    total: int
    to_prepare: int
    in_transit: int
    delivered: int
    failed: int


def matches_search(order: Order, search: str | None) -> bool:
    if not search or not search.strip():
        return True
    needle = search.strip().lower()
    return needle in order.order_number.lower() or needle in order.customer_name.lower()


def matches_delivery_filter(order: Order, driver_id: ActorId, f: DeliveryFilter) -> bool:
    if order.driver_id != driver_id:
        return False
    if f.delivery_date is not None and order.delivery_date != f.delivery_date:
        return False
    if f.status is not None and order.status != f.status:
        return False
    return matches_search(order, f.search)


def filter_deliveries(
    orders: list[Order], driver_id: ActorId, f: DeliveryFilter = DeliveryFilter(),
) -> list[Order]:
    """Orders assigned to `driver_id` that pass every set filter field."""
    return [o for o in orders if matches_delivery_filter(o, driver_id, f)]


def delivery_summary(orders: list[Order]) -> DeliverySummary:
    def count(*statuses: OrderStatus) -> int:
        return sum(1 for o in orders if o.status in statuses)

    return DeliverySummary(
        total=len(orders),
        to_prepare=count(OrderStatus.CONFIRMED, OrderStatus.PREPARING),
        in_transit=count(OrderStatus.OUT_FOR_DELIVERY),
        delivered=count(OrderStatus.DELIVERED),
        failed=count(OrderStatus.FAILED),
    )
