"""Admin Oversight — store staff view of every order with a next-status shortcut.

Invariants:
    - next_status() offers only forward steps the admin role may take
      (pending → confirmed, confirmed → preparing); dispatch and delivery stay
      with the assigned driver
    - Cancelling an order out for delivery needs override=True; the backend
      rejects it otherwise
    - Writes go through StatusUpdater (no retries, resync on rejection)
"""

from fulfillment.core.domain_types import Actor, ActorId, ActorRole, OrderId, OrderStatus
from fulfillment.core.errors import StateError
from fulfillment.core.order import Order
from fulfillment.core.order_state_machine import next_status, permitted_targets
from fulfillment.core.repository_protocols import FulfillmentApi
from fulfillment.services.order_cache import OrderCache
from fulfillment.services.status_updates import StatusUpdater

ADMIN = Actor(ActorRole.ADMIN)


class AdminOversight:
    def __init__(self, api: FulfillmentApi, cache: OrderCache, updater: StatusUpdater):
        self.api = api
        self.cache = cache
        self.updater = updater

    async def list_orders(
        self,
        status: OrderStatus | None = None,
        search: str | None = None,
        refresh: bool = False,
    ) -> list[Order]:
        value = status.value if status else None
        return await self.cache.list(
            f"admin:{value or 'all'}:{search or ''}",
            lambda: self.api.list_admin_orders(value, search),
            refresh,
        )

    def next_status(self, order: Order) -> OrderStatus | None:
        return next_status(order, ADMIN)

    def available_actions(self, order: Order) -> list[OrderStatus]:
        return permitted_targets(order, ADMIN)

    async def transition(
        self,
        order_id: OrderId,
        target: OrderStatus,
        notes: str | None = None,
        reason: str | None = None,
        override: bool = False,
    ) -> Order:
        payload = {
            "status": target.value, "notes": notes,
            "reason": reason, "override": override,
        }
        return await self.updater.submit(
            order_id, lambda: self.api.update_order_status(order_id, payload), target,
        )

    async def advance(self, order_id: OrderId, notes: str | None = None) -> Order:
        """Move the order one step forward, if the admin may."""
        order = await self.cache.get(order_id)
        target = self.next_status(order)
        if target is None:
            raise StateError(
                f"No next status available for an order that is {order.status.value}",
                order.status.value, None, "NO_NEXT_STATUS",
            )
        return await self.transition(order_id, target, notes=notes)

    async def confirm(self, order_id: OrderId, notes: str | None = None) -> Order:
        return await self.transition(order_id, OrderStatus.CONFIRMED, notes=notes)

    async def cancel(
        self, order_id: OrderId, reason: str, override: bool = False,
    ) -> Order:
        return await self.transition(
            order_id, OrderStatus.CANCELLED, reason=reason, override=override,
        )

    async def assign_driver(self, order_id: OrderId, driver_id: ActorId) -> Order:
        return await self.updater.submit(
            order_id, lambda: self.api.assign_driver(order_id, driver_id),
        )
