"""Integration Tests: Checkout — cart to placed order through the real API.

Invariants:
    - COD stays locked until the fifth GCash order has been delivered
    - Local preview total equals the backend's total
    - The cart is cleared only after the backend accepted the order
    - Re-applying the same promo is a no-op; a rejected promo keeps the current one
"""

import pytest

from fulfillment.core.cart_ledger import Product
from fulfillment.core.domain_types import OrderStatus, PaymentMethod, ProductId
from fulfillment.core.errors import (
    AuthorizationError, CodNotEligibleError, EmptyCartError, PromoMinimumNotMetError,
    StateError, UnknownPromoCodeError, ValidationError,
)
from fulfillment.core.order import ProofOfDelivery
from fulfillment.infrastructure.cart_storage import MemoryCartStorage


TOMATO = Product(ProductId("tomato"), "Tomatoes", 85.0, 10, "vegetables", "kg")
LETTUCE = Product(ProductId("lettuce"), "Lettuce", 120.0, 5, "vegetables", "head")
ADDRESS = "12 Mabini St, Quezon City"


class _ReadOnlyAfterStart(MemoryCartStorage):
    """Accepts writes until `frozen` is set, then fails like a full disk."""

    frozen = False

    def set(self, key: str, value: str) -> None:
        if self.frozen:
            raise OSError(28, "No space left on device")
        super().set(key, value)


# -- Pricing preview -------------------------------------------------------------

async def test_two_products_below_threshold(storefront):
    storage = MemoryCartStorage()
    sf = storefront("customer-token", storage)
    sf.cart.add_item(TOMATO, 2)
    sf.cart.add_item(LETTUCE, 1)

    checkout = sf.checkout()
    await checkout.start()
    preview = checkout.summary()
    assert preview.subtotal == 290.0
    assert preview.shipping_fee == 50.0
    assert preview.total == 340.0

    order = await checkout.place_order(ADDRESS)
    assert order.total == preview.total
    assert order.status == OrderStatus.PENDING
    assert order.item_count == 3
    assert sf.cart.state.is_empty
    assert sf.cache.peek(order.id) == order

    # the cleared cart is what a restart sees
    assert storefront("customer-token", storage).cart.state.is_empty


async def test_promo_reapply_is_noop_and_rejection_keeps_current(storefront):
    sf = storefront("customer-token")
    sf.cart.add_item(TOMATO, 6)
    checkout = sf.checkout()
    await checkout.start()

    applied = checkout.apply_promo("WELCOME10")
    assert checkout.apply_promo(" welcome10 ") is applied

    with pytest.raises(PromoMinimumNotMetError):
        checkout.apply_promo("FRESH20")
    with pytest.raises(UnknownPromoCodeError):
        checkout.apply_promo("FREEBIES")
    assert checkout.applied_promo.code == "WELCOME10"

    preview = checkout.summary()
    assert preview.discount == 51.0
    order = await checkout.place_order(ADDRESS)
    assert order.promo_code == "WELCOME10"
    assert order.total == preview.total == 509.0


async def test_removing_items_below_promo_minimum_invalidates_preview(storefront):
    sf = storefront("customer-token")
    sf.cart.add_item(TOMATO, 6)
    checkout = sf.checkout()
    await checkout.start()
    checkout.apply_promo("WELCOME10")

    sf.cart.update_quantity(TOMATO.id, 2)
    with pytest.raises(PromoMinimumNotMetError):
        checkout.summary()
    checkout.remove_promo()
    assert checkout.summary().total == 220.0


# -- Guards ------------------------------------------------------------------------

async def test_checkout_requires_start(storefront):
    sf = storefront("customer-token")
    sf.cart.add_item(TOMATO)
    with pytest.raises(StateError) as exc:
        await sf.checkout().place_order(ADDRESS)
    assert exc.value.code == "CHECKOUT_NOT_STARTED"


async def test_empty_cart_and_blank_address_rejected_locally(storefront):
    sf = storefront("customer-token")
    checkout = sf.checkout()
    await checkout.start()
    with pytest.raises(EmptyCartError):
        await checkout.place_order(ADDRESS)

    sf.cart.add_item(TOMATO)
    with pytest.raises(ValidationError):
        await checkout.place_order("   ")
    assert await sf.orders.list(refresh=True) == []


async def test_backend_rejection_keeps_cart(storefront):
    sf = storefront("admin-token")
    sf.cart.add_item(TOMATO, 2)
    checkout = sf.checkout()
    await checkout.start()
    with pytest.raises(AuthorizationError):
        await checkout.place_order(ADDRESS)
    assert sf.cart.quantity_of(TOMATO.id) == 2



async def test_cart_write_failure_after_placement_still_returns_order(storefront):
    storage = _ReadOnlyAfterStart()
    sf = storefront("customer-token", storage)
    sf.cart.add_item(TOMATO, 2)
    checkout = sf.checkout()
    await checkout.start()
    storage.frozen = True

    order = await checkout.place_order(ADDRESS)
    assert order.status == OrderStatus.PENDING
    assert checkout.placed_order == order
    assert checkout.cart_cleared is False
    assert sf.cache.peek(order.id) == order
    assert sf.cart.quantity_of(TOMATO.id) == 2

    with pytest.raises(StateError) as exc:
        await checkout.place_order(ADDRESS)
    assert exc.value.code == "ORDER_ALREADY_PLACED"
    placed = await sf.orders.list(refresh=True)
    assert [o.id for o in placed] == [order.id]


# -- COD unlock --------------------------------------------------------------------

async def test_cod_unlocks_after_fifth_delivered_gcash_order(storefront, flow, users):
    customer = storefront("customer-token")
    admin = storefront("admin-token")
    driver = storefront("driver-token")

    customer.cart.add_item(TOMATO, 2)
    checkout = customer.checkout()
    eligibility = await checkout.start()
    assert not eligibility.eligible
    assert eligibility.orders_needed == 1

    options = {o.method: o for o in checkout.payment_options()}
    assert options[PaymentMethod.GCASH].available
    assert not options[PaymentMethod.COD].available
    with pytest.raises(CodNotEligibleError):
        checkout.select_payment(PaymentMethod.COD)

    order = await checkout.place_order(ADDRESS)
    assert order.payment_method == PaymentMethod.GCASH

    assert (await flow.confirm_payment(str(order.id))).status_code == 200
    await admin.admin.assign_driver(order.id, users["driver"].id)
    await driver.deliveries.mark_preparing(order.id)
    await driver.deliveries.start_delivery(order.id)
    delivered = await driver.deliveries.complete_delivery(
        order.id, ProofOfDelivery("Maria Santos"),
    )
    assert delivered.status == OrderStatus.DELIVERED

    customer.cart.add_item(LETTUCE, 1)
    second = customer.checkout()
    eligibility = await second.start()
    assert eligibility.eligible
    assert eligibility.successful_gcash_orders == 5

    second.select_payment(PaymentMethod.COD)
    cod_order = await second.place_order(ADDRESS)
    assert cod_order.payment_method == PaymentMethod.COD
    assert cod_order.total == 170.0
