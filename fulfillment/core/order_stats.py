"""Order Stats — customer purchase totals and driver performance over orders.

Invariants:
    - Both reducers are pure: same orders in, same numbers out
    - total_spent counts only orders that were not cancelled or failed
    - A driver's numbers only ever include orders assigned to that driver
    - Rates are whole percentages; an empty input gives 0, never a division error
    - Naive datetimes (SQLite drops the zone) are read as UTC

Design Decisions:
    - success_rate is measured against every order assigned in the period,
      in-flight ones included, so a driver with open deliveries reads below 100
    - Periods are rolling windows back from `now` on created_at, not calendar months
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from fulfillment.core.domain_types import ActorId, OrderStatus, PaymentMethod
from fulfillment.core.order import Order

_UNPAID_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.FAILED})


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


# ─── Customer ────────────────────────────────────────────────────

@dataclass(frozen=True)
class CustomerOrderStats:
    total_orders: int
    total_spent: float
    average_order_value: float
    completed_orders: int
    cancelled_orders: int

    @property
    def completion_rate(self) -> int:
        return _percent(self.completed_orders, self.total_orders)

    def to_dict(self) -> dict:
        return {**asdict(self), "completion_rate": self.completion_rate}

    @classmethod
    def from_dict(cls, data: dict) -> "CustomerOrderStats":
        return cls(
            total_orders=int(data["total_orders"]),
            total_spent=float(data["total_spent"]),
            average_order_value=float(data["average_order_value"]),
            completed_orders=int(data["completed_orders"]),
            cancelled_orders=int(data["cancelled_orders"]),
        )


def customer_order_stats(orders: list[Order]) -> CustomerOrderStats:
    """Totals for one customer's orders (the caller scopes the list)."""
    paid = [o for o in orders if o.status not in _UNPAID_STATUSES]
    spent = round(sum(o.total for o in paid), 2)
    return CustomerOrderStats(
        total_orders=len(orders),
        total_spent=spent,
        average_order_value=round(spent / len(paid), 2) if paid else 0.0,
        completed_orders=sum(1 for o in orders if o.status == OrderStatus.DELIVERED),
        cancelled_orders=sum(1 for o in orders if o.status == OrderStatus.CANCELLED),
    )


def recent_orders(orders: list[Order], limit: int = 5) -> list[Order]:
    return sorted(orders, key=lambda o: _aware(o.created_at), reverse=True)[:limit]


# ─── Driver ──────────────────────────────────────────────────────

class PerformancePeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


_PERIOD_DAYS = {
    PerformancePeriod.WEEK: 7,
    PerformancePeriod.MONTH: 30,
    PerformancePeriod.YEAR: 365,
}


def period_start(period: PerformancePeriod, now: datetime) -> datetime | None:
    """Start of the rolling window, or None for ALL."""
    days = _PERIOD_DAYS.get(period)
    return _aware(now) - timedelta(days=days) if days is not None else None


@dataclass(frozen=True)
class DriverPerformance:
    total_deliveries: int
    successful_deliveries: int
    failed_deliveries: int
    cod_collected: float
    average_delivery_minutes: int | None

    @property
    def success_rate(self) -> int:
        return _percent(self.successful_deliveries, self.total_deliveries)

    def to_dict(self) -> dict:
        return {**asdict(self), "success_rate": self.success_rate}

    @classmethod
    def from_dict(cls, data: dict) -> "DriverPerformance":
        minutes = data.get("average_delivery_minutes")
        return cls(
            total_deliveries=int(data["total_deliveries"]),
            successful_deliveries=int(data["successful_deliveries"]),
            failed_deliveries=int(data["failed_deliveries"]),
            cod_collected=float(data["cod_collected"]),
            average_delivery_minutes=int(minutes) if minutes is not None else None,
        )


def _delivery_minutes(order: Order) -> float | None:
    if order.assigned_at is None or order.delivered_at is None:
        return None
    return (_aware(order.delivered_at) - _aware(order.assigned_at)).total_seconds() / 60


def driver_performance(
    orders: list[Order], driver_id: ActorId, since: datetime | None = None,
) -> DriverPerformance:
    mine = [
        o for o in orders
        if o.driver_id == driver_id and (since is None or _aware(o.created_at) >= _aware(since))
    ]
    delivered = [o for o in mine if o.status == OrderStatus.DELIVERED]
    minutes = [m for o in delivered if (m := _delivery_minutes(o)) is not None]
    return DriverPerformance(
        total_deliveries=len(mine),
        successful_deliveries=len(delivered),
        failed_deliveries=sum(1 for o in mine if o.status == OrderStatus.FAILED),
        cod_collected=round(
            sum(o.total for o in delivered if o.payment_method == PaymentMethod.COD), 2,
        ),
        average_delivery_minutes=round(sum(minutes) / len(minutes)) if minutes else None,
    )
