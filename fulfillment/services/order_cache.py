"""Order Cache — read-through, invalidate-on-write view of backend orders.

Invariants:
    - Only backend responses ever enter the cache; nothing is written
      speculatively ahead of a status change
    - Every write (record_write) drops all cached lists, since any list may now
      be stale
    - get(refresh=True) and list(refresh=True) always hit the backend

Design Decisions:
    - Lists are cached under caller-chosen string keys with the fetch coroutine
      passed in, so customer, driver and admin views share one cache
"""

import logging
from typing import Awaitable, Callable

from fulfillment.core.domain_types import OrderId
from fulfillment.core.order import Order
from fulfillment.core.order_snapshot import order_from_snapshot
from fulfillment.core.repository_protocols import FulfillmentApi

logger = logging.getLogger(__name__)

ListFetcher = Callable[[], Awaitable[list[dict]]]


class OrderCache:
    def __init__(self, api: FulfillmentApi):
        self.api = api
        self._orders: dict[OrderId, Order] = {}
        self._lists: dict[str, list[OrderId]] = {}

    def peek(self, order_id: OrderId) -> Order | None:
        """Cached order without a request, or None."""
        return self._orders.get(order_id)

    async def get(self, order_id: OrderId, refresh: bool = False) -> Order:
        if not refresh and order_id in self._orders:
            return self._orders[order_id]
        order = order_from_snapshot(await self.api.get_order(order_id))
        self._orders[order.id] = order
        return order

    async def list(
        self, key: str, fetch: ListFetcher, refresh: bool = False,
    ) -> list[Order]:
        if not refresh and key in self._lists:
            ids = self._lists[key]
            if all(i in self._orders for i in ids):
                return [self._orders[i] for i in ids]
        orders = [order_from_snapshot(d) for d in await fetch()]
        for order in orders:
            self._orders[order.id] = order
        self._lists[key] = [o.id for o in orders]
        return orders

    def record_write(self, order: Order) -> None:
        """Store the backend's post-write order and drop every cached list."""
        self._orders[order.id] = order
        self.invalidate_lists()

    def invalidate(self, order_id: OrderId) -> None:
        self._orders.pop(order_id, None)

    def invalidate_lists(self) -> None:
        self._lists.clear()

    def clear(self) -> None:
        self._orders.clear()
        self._lists.clear()
