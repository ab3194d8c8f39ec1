"""Status Updater — one in-flight write per order, no retries, resync on rejection.

Invariants:
    - At most one request per order is in flight; a second submit while one is
      pending raises StateError (UPDATE_IN_PROGRESS) without sending anything
    - Nothing is retried automatically
    - StateError from the backend: the order and all lists are invalidated, the
      order is re-fetched, then the original error is re-raised verbatim
    - NetworkError: the cache is left exactly as it was
    - Success: the backend's returned order is recorded (record_write)

Design Decisions:
    - The caller passes the request as a zero-argument coroutine factory, so the
      customer, driver and admin endpoints share one loading/resync policy
"""

import logging
from typing import Awaitable, Callable

from fulfillment.core.domain_types import OrderId, OrderStatus
from fulfillment.core.errors import FulfillmentError, NetworkError, StateError
from fulfillment.core.order import Order
from fulfillment.core.order_snapshot import order_from_snapshot
from fulfillment.services.order_cache import OrderCache

logger = logging.getLogger(__name__)

Send = Callable[[], Awaitable[dict]]


class StatusUpdater:
    def __init__(self, cache: OrderCache):
        self.cache = cache
        self._in_flight: set[OrderId] = set()

    def is_loading(self, order_id: OrderId) -> bool:
        return order_id in self._in_flight

    async def submit(
        self, order_id: OrderId, send: Send, target: OrderStatus | None = None,
    ) -> Order:
        requested = target.value if target else None
        if order_id in self._in_flight:
            raise StateError(
                "An update for this order is already in progress",
                None, requested, "UPDATE_IN_PROGRESS",
            )

        self._in_flight.add(order_id)
        try:
            data = await send()
        except StateError as e:
            logger.info(
                f"Update rejected by backend, resyncing order: {e.message}",
                extra={"order_id": order_id, "error_code": e.code,
                       "to_status": requested},
            )
            await self._resync(order_id)
            raise
        except NetworkError as e:
            logger.warning(
                f"Update not sent: {e.message}",
                extra={"order_id": order_id, "error_code": e.code},
            )
            raise
        finally:
            self._in_flight.discard(order_id)

        order = order_from_snapshot(data)
        self.cache.record_write(order)
        return order

    async def _resync(self, order_id: OrderId) -> None:
        self.cache.invalidate(order_id)
        self.cache.invalidate_lists()
        try:
            await self.cache.get(order_id, refresh=True)
        except FulfillmentError as e:
            logger.warning(
                f"Re-fetch after rejection failed: {e.message}",
                extra={"order_id": order_id, "error_code": e.code},
            )
