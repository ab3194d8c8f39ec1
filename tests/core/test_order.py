"""Order Model — creation from a priced cart and order numbering."""

import re
from uuid import uuid4

import pytest

from fulfillment.core.cart_ledger import AddItem, CartState, Product, cart_reducer
from fulfillment.core.domain_types import ActorId, OrderId, OrderStatus, PaymentMethod, ProductId
from fulfillment.core.errors import EmptyCartError, ValidationError
from fulfillment.core.order import create_order, generate_order_number, snapshot_items
from fulfillment.core.pricing import price_cart

TOMATO = Product(ProductId("tomato"), "Tomatoes", 85.0, 10, "vegetables", "kg")


def _create(now, items, address="12 Mabini St"):
    return create_order(
        order_id=OrderId(uuid4()),
        order_number=generate_order_number(now, "AB12"),
        customer_id=ActorId(uuid4()),
        customer_name="Maria Santos",
        items=items,
        pricing=price_cart(170.0),
        payment_method=PaymentMethod.GCASH,
        delivery_address=address,
        now=now,
    )


def test_order_number_format(now):
    assert generate_order_number(now, "K3QZ") == "CV20261017K3QZ"
    assert re.fullmatch(r"CV20261017[A-Z0-9]{4}", generate_order_number(now))


def test_new_order_is_pending_with_frozen_items(now):
    cart = cart_reducer(CartState(), AddItem(TOMATO, 2))
    order = _create(now, snapshot_items(cart.items), "  12 Mabini St  ")

    assert order.status == OrderStatus.PENDING
    assert order.status_history == ()
    assert order.delivery_address == "12 Mabini St"
    assert order.items[0].subtotal == 170.0
    assert order.total == 220.0

    # later cart changes never reach the order
    cart_reducer(cart, AddItem(TOMATO, 5))
    assert order.item_count == 2


def test_empty_items_rejected(now):
    with pytest.raises(EmptyCartError):
        _create(now, ())


def test_blank_address_rejected(now):
    cart = cart_reducer(CartState(), AddItem(TOMATO, 1))
    with pytest.raises(ValidationError) as exc:
        _create(now, snapshot_items(cart.items), "   ")
    assert exc.value.field == "delivery_address"
