"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, tests pass in-memory fakes
    - KeyValueStorage is synchronous: the cart blob is small and local, and the
      reduce → persist → publish unit must not interleave with other actions
    - FulfillmentApi is async: every method is one request/response round trip,
      and none of them retry
"""

from typing import Protocol

from fulfillment.core.domain_types import ActorId, OrderId


class KeyValueStorage(Protocol):
    """Contract for the client-persisted cart blob — implemented by shell."""
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


class FulfillmentApi(Protocol):
    """Contract for the backend JSON API — implemented by shell.

    Payloads and results are plain dicts in the order snapshot layout
    (core/order_snapshot.py); services convert them to domain values.
    """
    async def list_orders(self, status: str | None = None) -> list[dict]: ...
    async def get_order(self, order_id: OrderId) -> dict: ...
    async def create_order(self, payload: dict) -> dict: ...
    async def update_order_status(self, order_id: OrderId, payload: dict) -> dict: ...
    async def submit_feedback(self, order_id: OrderId, payload: dict) -> dict: ...
    async def get_order_stats(self) -> dict: ...
    async def get_cod_eligibility(self) -> dict: ...
    async def list_deliveries(self, params: dict[str, str]) -> list[dict]: ...
    async def update_delivery_status(self, order_id: OrderId, payload: dict) -> dict: ...
    async def set_availability(self, is_available: bool) -> dict: ...
    async def get_driver_performance(self, period: str) -> dict: ...
    async def list_admin_orders(
        self, status: str | None = None, search: str | None = None,
    ) -> list[dict]: ...
    async def assign_driver(self, order_id: OrderId, driver_id: ActorId) -> dict: ...
