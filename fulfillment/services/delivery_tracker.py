"""Delivery Tracker — driver dashboard: assigned deliveries and their outcome.

Invariants:
    - Proof and failure reason are validated locally before any request; a
      rejected payload never reaches the backend
    - The proof travels in the same request as the delivered status, so the
      backend commits both or neither
    - Availability is a standalone toggle; it never touches the order cache

Design Decisions:
    - Writes go through StatusUpdater: one in-flight request per order, resync
      on backend rejection, no retries
"""

import logging

from fulfillment.core.delivery_rules import DeliveryFilter, DeliverySummary, delivery_summary
from fulfillment.core.domain_types import OrderId, OrderStatus
from fulfillment.core.order import Order, ProofOfDelivery
from fulfillment.core.order_snapshot import proof_to_dict
from fulfillment.core.order_stats import DriverPerformance, PerformancePeriod
from fulfillment.core.order_state_machine import TransitionRules, require_reason, validate_proof
from fulfillment.core.repository_protocols import FulfillmentApi
from fulfillment.services.order_cache import OrderCache
from fulfillment.services.status_updates import StatusUpdater

logger = logging.getLogger(__name__)


class DeliveryTracker:
    def __init__(
        self,
        api: FulfillmentApi,
        cache: OrderCache,
        updater: StatusUpdater,
        rules: TransitionRules = TransitionRules(),
    ):
        self.api = api
        self.cache = cache
        self.updater = updater
        self.rules = rules
        self.is_available: bool | None = None

    async def list_deliveries(
        self, f: DeliveryFilter = DeliveryFilter(), refresh: bool = False,
    ) -> list[Order]:
        params = f.to_params()
        key = "deliveries:" + "&".join(f"{k}={v}" for k, v in sorted(params.items()))
        return await self.cache.list(key, lambda: self.api.list_deliveries(params), refresh)

    async def summary(self, refresh: bool = False) -> DeliverySummary:
        return delivery_summary(await self.list_deliveries(refresh=refresh))

    async def _send(self, order_id: OrderId, payload: dict) -> Order:
        target = OrderStatus(payload["status"])
        return await self.updater.submit(
            order_id,
            lambda: self.api.update_delivery_status(order_id, payload),
            target,
        )

    async def mark_preparing(self, order_id: OrderId, notes: str | None = None) -> Order:
        return await self._send(
            order_id, {"status": OrderStatus.PREPARING.value, "notes": notes},
        )

    async def start_delivery(self, order_id: OrderId, notes: str | None = None) -> Order:
        return await self._send(
            order_id, {"status": OrderStatus.OUT_FOR_DELIVERY.value, "notes": notes},
        )

    async def complete_delivery(
        self, order_id: OrderId, proof: ProofOfDelivery, notes: str | None = None,
    ) -> Order:
        validate_proof(proof, self.rules.require_delivery_photo)
        return await self._send(order_id, {
            "status": OrderStatus.DELIVERED.value,
            "notes": notes,
            "proof_of_delivery": proof_to_dict(proof),
        })

    async def fail_delivery(self, order_id: OrderId, reason: str) -> Order:
        reason = require_reason(reason)
        return await self._send(
            order_id, {"status": OrderStatus.FAILED.value, "reason": reason},
        )

    async def set_availability(self, is_available: bool) -> bool:
        data = await self.api.set_availability(is_available)
        self.is_available = bool(data["is_available"])
        logger.info(f"Driver availability is now {self.is_available}")
        return self.is_available

    async def performance(
        self, period: PerformancePeriod = PerformancePeriod.MONTH,
    ) -> DriverPerformance:
        return DriverPerformance.from_dict(await self.api.get_driver_performance(period.value))
