"""Fulfillment API Client — httpx wrapper for the backend orders/driver/admin contract.

Invariants:
    - Every request carries the bearer credential
    - No request is retried: a transport failure raises NetworkError and the
      caller's view stays exactly as it was
    - Non-2xx responses are rebuilt into typed errors (error_from_response),
      keeping the backend message verbatim

Design Decisions:
    - One AsyncClient per session: connection reuse, explicit close()
    - `transport` is injectable: tests drive the real FastAPI app through
      httpx.ASGITransport or simulate outages with httpx.MockTransport
"""

import logging

import httpx

from fulfillment.core.domain_types import ActorId, OrderId
from fulfillment.core.errors import NetworkError, error_from_response

logger = logging.getLogger(__name__)


class FulfillmentApiClient:
    """Implements FulfillmentApi over HTTP."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, operation: str, **kwargs):
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.warning(
                f"{operation} failed: {type(e).__name__}: {e}",
                extra={"path": path, "error_code": "NETWORK_ERROR"},
            )
            raise NetworkError(str(e) or type(e).__name__, operation) from e

        if response.is_success:
            return response.json()

        try:
            payload = response.json()
        except ValueError:
            payload = None
        error = error_from_response(response.status_code, payload)
        logger.info(
            f"{operation} rejected: {error.message}",
            extra={"path": path, "error_code": error.code},
        )
        raise error

    # ─── Orders ──────────────────────────────────────────────────

    async def list_orders(self, status: str | None = None) -> list[dict]:
        params = {"status": status} if status else None
        return await self._request("GET", "/orders", "list_orders", params=params)

    async def get_order(self, order_id: OrderId) -> dict:
        return await self._request("GET", f"/orders/{order_id}", "get_order")

    async def create_order(self, payload: dict) -> dict:
        return await self._request("POST", "/orders", "create_order", json=payload)

    async def update_order_status(self, order_id: OrderId, payload: dict) -> dict:
        return await self._request(
            "PUT", f"/orders/{order_id}/status", "update_order_status", json=payload,
        )

    async def submit_feedback(self, order_id: OrderId, payload: dict) -> dict:
        return await self._request(
            "POST", f"/orders/{order_id}/feedback", "submit_feedback", json=payload,
        )

    async def get_order_stats(self) -> dict:
        return await self._request("GET", "/orders/stats", "get_order_stats")

    async def get_cod_eligibility(self) -> dict:
        return await self._request("GET", "/auth/cod-eligibility", "get_cod_eligibility")

    # ─── Driver ──────────────────────────────────────────────────

    async def list_deliveries(self, params: dict[str, str]) -> list[dict]:
        return await self._request(
            "GET", "/driver/deliveries", "list_deliveries", params=params or None,
        )

    async def update_delivery_status(self, order_id: OrderId, payload: dict) -> dict:
        return await self._request(
            "PUT", f"/driver/deliveries/{order_id}/status", "update_delivery_status",
            json=payload,
        )

    async def set_availability(self, is_available: bool) -> dict:
        return await self._request(
            "PUT", "/driver/availability", "set_availability",
            json={"is_available": is_available},
        )

    async def get_driver_performance(self, period: str) -> dict:
        return await self._request(
            "GET", "/driver/performance", "get_driver_performance",
            params={"period": period},
        )

    # ─── Admin ───────────────────────────────────────────────────

    async def list_admin_orders(
        self, status: str | None = None, search: str | None = None,
    ) -> list[dict]:
        params = {k: v for k, v in (("status", status), ("search", search)) if v}
        return await self._request(
            "GET", "/admin/orders", "list_admin_orders", params=params or None,
        )

    async def assign_driver(self, order_id: OrderId, driver_id: ActorId) -> dict:
        return await self._request(
            "PUT", f"/admin/orders/{order_id}/assign-driver", "assign_driver",
            json={"driver_id": str(driver_id)},
        )

    async def close(self):
        await self.client.aclose()
