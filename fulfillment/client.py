"""Storefront Client — composition root for the client-side services.

Invariants:
    - Every collaborator is constructed here and passed in; no module holds a
      cart, cache or credential at import time
    - One OrderCache and one StatusUpdater are shared by the customer, driver and
      admin views, so a write through any of them invalidates the others' lists

Design Decisions:
    - checkout() returns a fresh CheckoutSession each call (eligibility is
      re-fetched per checkout)
    - transport passthrough lets tests run the whole client against the ASGI app
"""

from dataclasses import dataclass

import httpx

from fulfillment.config import Settings
from fulfillment.core.repository_protocols import KeyValueStorage
from fulfillment.infrastructure.api_client import FulfillmentApiClient
from fulfillment.infrastructure.cart_storage import FileCartStorage
from fulfillment.services.admin_oversight import AdminOversight
from fulfillment.services.cart_service import CartSession
from fulfillment.services.checkout_service import CheckoutSession
from fulfillment.services.customer_orders import CustomerOrders
from fulfillment.services.delivery_tracker import DeliveryTracker
from fulfillment.services.order_cache import OrderCache
from fulfillment.services.status_updates import StatusUpdater


@dataclass
class Storefront:
    settings: Settings
    api: FulfillmentApiClient
    cart: CartSession
    cache: OrderCache
    updater: StatusUpdater
    orders: CustomerOrders
    deliveries: DeliveryTracker
    admin: AdminOversight

    def checkout(self) -> CheckoutSession:
        return CheckoutSession(
            self.api, self.cart, self.cache, self.settings.shipping_policy,
        )

    async def close(self):
        await self.api.close()


def build_storefront(
    settings: Settings,
    token: str,
    storage: KeyValueStorage | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Storefront:
    api = FulfillmentApiClient(
        settings.api_base_url, token, settings.api_timeout_seconds, transport,
    )
    cart = CartSession(
        storage or FileCartStorage(settings.cart_storage_dir),
        settings.cart_storage_key,
        settings.cart_clamp_on_update,
    )
    cache = OrderCache(api)
    updater = StatusUpdater(cache)
    return Storefront(
        settings=settings,
        api=api,
        cart=cart,
        cache=cache,
        updater=updater,
        orders=CustomerOrders(api, cache, updater),
        deliveries=DeliveryTracker(api, cache, updater, settings.transition_rules),
        admin=AdminOversight(api, cache, updater),
    )
