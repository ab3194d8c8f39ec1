"""Checkout Session — one pass from cart to placed order.

Invariants:
    - COD eligibility is fetched fresh by start(); nothing else unlocks COD
    - At most one promo is applied; re-applying the same code is a no-op and a
      different code replaces it
    - Cart and pricing errors are raised locally before any request
    - The cart is cleared only after the backend accepted the order
    - Once the backend accepted the order, place_order returns it even if the
      cart write fails (cart_cleared stays False); the session then refuses a
      second placement

Design Decisions:
    - A new CheckoutSession per checkout (Storefront.checkout()): eligibility and
      promo never leak from one checkout into the next
"""

import logging
from datetime import date

from fulfillment.core.cart_ledger import validate_for_checkout
from fulfillment.core.cod_gate import (
    CodEligibility, PaymentOption, check_payment_method, eligibility_from_dict,
    payment_options,
)
from fulfillment.core.domain_types import PaymentMethod
from fulfillment.core.errors import StateError, StorageError, ValidationError
from fulfillment.core.order import Order
from fulfillment.core.order_snapshot import order_from_snapshot
from fulfillment.core.pricing import (
    PROMO_CODES, AppliedPromo, PriceSummary, PromoCode, ShippingPolicy,
    apply_promo, normalize_promo_code, price_cart,
)
from fulfillment.core.repository_protocols import FulfillmentApi
from fulfillment.services.cart_service import CartSession
from fulfillment.services.order_cache import OrderCache

logger = logging.getLogger(__name__)


class CheckoutSession:
    def __init__(
        self,
        api: FulfillmentApi,
        cart: CartSession,
        cache: OrderCache,
        shipping_policy: ShippingPolicy = ShippingPolicy(),
        promo_codes: dict[str, PromoCode] = PROMO_CODES,
    ):
        self.api = api
        self.cart = cart
        self.cache = cache
        self.shipping_policy = shipping_policy
        self.promo_codes = promo_codes
        self.eligibility: CodEligibility | None = None
        self.payment_method = PaymentMethod.GCASH
        self.applied_promo: AppliedPromo | None = None
        self.placed_order: Order | None = None
        self.cart_cleared = False

    async def start(self) -> CodEligibility:
        """Fetch eligibility and reset payment choice and promo."""
        self.eligibility = eligibility_from_dict(await self.api.get_cod_eligibility())
        self.payment_method = PaymentMethod.GCASH
        self.applied_promo = None
        return self.eligibility

    def _require_started(self) -> CodEligibility:
        if self.eligibility is None:
            raise StateError(
                "Checkout has not been started", None, None, "CHECKOUT_NOT_STARTED",
            )
        return self.eligibility

    def payment_options(self) -> list[PaymentOption]:
        return payment_options(self._require_started())

    def select_payment(self, method: PaymentMethod) -> None:
        check_payment_method(method, self._require_started())
        self.payment_method = method

    # ─── Promo ───────────────────────────────────────────────────

    def apply_promo(self, code: str) -> AppliedPromo:
        normalized = normalize_promo_code(code)
        if self.applied_promo is not None and self.applied_promo.code == normalized:
            return self.applied_promo
        self.applied_promo = apply_promo(code, self.cart.state.subtotal, self.promo_codes)
        return self.applied_promo

    def remove_promo(self) -> None:
        self.applied_promo = None

    def summary(self) -> PriceSummary:
        """Price the current cart; the promo is re-checked against today's subtotal."""
        return price_cart(
            self.cart.state.subtotal,
            self.shipping_policy,
            self.applied_promo.code if self.applied_promo else None,
            self.promo_codes,
        )

    # ─── Submit ──────────────────────────────────────────────────

    async def place_order(
        self,
        delivery_address: str,
        delivery_date: date | None = None,
        delivery_window: str | None = None,
    ) -> Order:
        if self.placed_order is not None:
            raise StateError(
                f"Order {self.placed_order.order_number} was already placed in this checkout",
                None, None, "ORDER_ALREADY_PLACED",
            )
        eligibility = self._require_started()
        state = self.cart.state
        validate_for_checkout(state)
        check_payment_method(self.payment_method, eligibility)
        if not delivery_address or not delivery_address.strip():
            raise ValidationError("Delivery address is required.", "delivery_address")
        preview = self.summary()

        payload = {
            "items": [
                {
                    "product_id": item.product_id,
                    "name": item.name,
                    "unit_price": item.unit_price,
                    "quantity": item.quantity,
                    "max_stock": item.max_stock,
                    "category": item.category,
                    "unit": item.unit,
                }
                for item in state.items
            ],
            "payment_method": self.payment_method.value,
            "delivery_address": delivery_address.strip(),
            "delivery_date": delivery_date.isoformat() if delivery_date else None,
            "delivery_window": delivery_window,
            "promo_code": preview.promo_code,
        }
        order = order_from_snapshot(await self.api.create_order(payload))
        self.placed_order = order
        self.cache.record_write(order)
        logger.info(
            f"Order {order.order_number} placed, total {order.total:.2f}",
            extra={"order_id": order.id, "order_number": order.order_number},
        )

        # The order exists now; a cart that cannot be cleared must not undo that.
        try:
            self.cart.clear()
            self.cart_cleared = True
        except StorageError as e:
            logger.error(
                f"Order {order.order_number} placed but the cart could not be cleared: {e.message}",
                extra={"order_id": order.id, "order_number": order.order_number, "error_code": e.code},
            )
        return order
