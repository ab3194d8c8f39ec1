"""Customer Orders — the shopper's order history, self-service cancel and feedback."""

from __future__ import annotations

from dataclasses import asdict

from fulfillment.core.domain_types import OrderId, OrderStatus
from fulfillment.core.order import Order, OrderFeedback
from fulfillment.core.order_feedback import validate_feedback
from fulfillment.core.order_snapshot import order_from_snapshot
from fulfillment.core.order_stats import CustomerOrderStats
from fulfillment.core.repository_protocols import FulfillmentApi
from fulfillment.services.order_cache import OrderCache
from fulfillment.services.status_updates import StatusUpdater


class CustomerOrders:
    def __init__(self, api: FulfillmentApi, cache: OrderCache, updater: StatusUpdater):
        self.api = api
        self.cache = cache
        self.updater = updater

    async def list(
        self, status: OrderStatus | None = None, refresh: bool = False,
    ) -> list[Order]:
        value = status.value if status else None
        return await self.cache.list(
            f"orders:{value or 'all'}",
            lambda: self.api.list_orders(value),
            refresh,
        )

    async def get(self, order_id: OrderId, refresh: bool = False) -> Order:
        return await self.cache.get(order_id, refresh)

    async def cancel(self, order_id: OrderId, reason: str | None = None) -> Order:
        """Cancel while still pending; the backend rejects anything later."""
        payload = {"status": OrderStatus.CANCELLED.value, "reason": reason}
        return await self.updater.submit(
            order_id,
            lambda: self.api.update_order_status(order_id, payload),
            OrderStatus.CANCELLED,
        )

    async def submit_feedback(self, order_id: OrderId, feedback: OrderFeedback) -> Order:
        """Rate a delivered order. Bad ratings fail here, before anything is sent."""
        checked = validate_feedback(feedback)
        payload = asdict(checked)
        del payload["submitted_at"]
        return await self.updater.submit(
            order_id, lambda: self.api.submit_feedback(order_id, payload),
        )

    async def stats(self) -> tuple[CustomerOrderStats, list[Order]]:
        """Always fetched fresh: totals are not derived from the cached lists."""
        data = await self.api.get_order_stats()
        recent = [order_from_snapshot(o) for o in data.get("recent_orders") or []]
        return CustomerOrderStats.from_dict(data), recent
