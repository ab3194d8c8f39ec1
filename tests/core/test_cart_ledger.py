"""Cart Ledger — pure reducer tests.

Invariants:
    - itemCount == Σ quantity and subtotal == Σ unit_price·quantity after any sequence
    - add never produces quantity > stock
    - clear resets totals to zero
    - A rejected action raises and the previous state is unchanged
"""

import random

import pytest

from fulfillment.core.cart_ledger import (
    AddItem, CartState, ClearCart, LoadCart, Product, RemoveItem, UpdateQuantity,
    cart_reducer, get_item, is_in_cart, item_quantity, validate_for_checkout,
)
from fulfillment.core.domain_types import ProductId
from fulfillment.core.errors import (
    CapacityError, EmptyCartError, ResourceNotFoundError, ValidationError,
)

TOMATO = Product(ProductId("tomato"), "Tomatoes", 85.0, 10, "vegetables", "kg")
LETTUCE = Product(ProductId("lettuce"), "Lettuce", 120.0, 5, "vegetables", "head")


def _cart(*actions) -> CartState:
    state = CartState()
    for action in actions:
        state = cart_reducer(state, action)
    return state


def _assert_totals(state: CartState):
    assert state.item_count == sum(i.quantity for i in state.items)
    assert state.subtotal == pytest.approx(sum(i.unit_price * i.quantity for i in state.items))


# -- Add -----------------------------------------------------------------------

def test_two_products_totals():
    """2× ₱85 + 1× ₱120 = ₱290 over 3 items."""
    state = _cart(AddItem(TOMATO, 2), AddItem(LETTUCE, 1))
    assert state.subtotal == pytest.approx(290.0)
    assert state.item_count == 3


def test_repeated_add_merges_into_one_line():
    state = _cart(AddItem(TOMATO, 2), AddItem(TOMATO, 3))
    assert len(state.items) == 1
    assert state.items[0].quantity == 5


def test_add_over_stock_rejected_and_state_unchanged():
    """Existing 8 + 3 exceeds stock 10: CapacityError names requested and available."""
    before = _cart(AddItem(TOMATO, 8))
    with pytest.raises(CapacityError) as exc:
        cart_reducer(before, AddItem(TOMATO, 3))
    assert exc.value.requested == 11
    assert exc.value.available == 10
    assert item_quantity(before, TOMATO.id) == 8


def test_add_exactly_stock_is_allowed():
    state = _cart(AddItem(LETTUCE, 5))
    assert state.items[0].quantity == 5


@pytest.mark.parametrize("quantity", [0, -1])
def test_add_non_positive_quantity_rejected(quantity):
    with pytest.raises(ValidationError) as exc:
        cart_reducer(CartState(), AddItem(TOMATO, quantity))
    assert exc.value.field == "quantity"


def test_add_refreshes_max_stock_from_product():
    state = _cart(AddItem(TOMATO, 2))
    restocked = Product(TOMATO.id, TOMATO.name, TOMATO.price, 20)
    state = cart_reducer(state, AddItem(restocked, 1))
    assert get_item(state, TOMATO.id).max_stock == 20


# -- Remove / update -------------------------------------------------------------

def test_remove_recomputes_totals():
    state = _cart(AddItem(TOMATO, 2), AddItem(LETTUCE, 1), RemoveItem(TOMATO.id))
    assert not is_in_cart(state, TOMATO.id)
    assert state.subtotal == pytest.approx(120.0)
    assert state.item_count == 1


def test_remove_missing_product_is_noop():
    state = _cart(AddItem(TOMATO, 1), RemoveItem(ProductId("nope")))
    assert state.item_count == 1


def test_update_to_zero_removes_line():
    state = _cart(AddItem(TOMATO, 2), UpdateQuantity(TOMATO.id, 0))
    assert state.is_empty


def test_update_over_stock_rejected_by_default():
    state = _cart(AddItem(LETTUCE, 1))
    with pytest.raises(CapacityError):
        cart_reducer(state, UpdateQuantity(LETTUCE.id, 6))


def test_update_over_stock_clamps_when_asked():
    state = _cart(AddItem(LETTUCE, 1), UpdateQuantity(LETTUCE.id, 9, clamp=True))
    assert item_quantity(state, LETTUCE.id) == 5


def test_update_missing_line_rejected():
    with pytest.raises(ResourceNotFoundError):
        cart_reducer(CartState(), UpdateQuantity(TOMATO.id, 2))


# -- Clear / load ----------------------------------------------------------------

def test_clear_resets_totals():
    state = _cart(AddItem(TOMATO, 2), AddItem(LETTUCE, 1), ClearCart())
    assert state.subtotal == 0
    assert state.item_count == 0
    assert state.is_empty


def test_load_recomputes_totals_from_lines():
    source = _cart(AddItem(TOMATO, 2), AddItem(LETTUCE, 1))
    state = cart_reducer(CartState(), LoadCart(source.items))
    assert state.subtotal == pytest.approx(290.0)
    assert state.item_count == 3


# -- Invariants over arbitrary sequences ------------------------------------------

def test_totals_hold_after_random_action_sequences():
    rng = random.Random(20261017)
    products = [TOMATO, LETTUCE, Product(ProductId("mango"), "Mango", 45.5, 3)]
    for _ in range(50):
        state = CartState()
        for _ in range(30):
            product = rng.choice(products)
            action = rng.choice([
                AddItem(product, rng.randint(1, 4)),
                RemoveItem(product.id),
                UpdateQuantity(product.id, rng.randint(-1, 6)),
            ])
            try:
                state = cart_reducer(state, action)
            except (CapacityError, ResourceNotFoundError):
                pass
            _assert_totals(state)
            assert all(1 <= i.quantity <= i.max_stock for i in state.items)
            assert len({i.product_id for i in state.items}) == len(state.items)


# -- Checkout validation -----------------------------------------------------------

def test_validate_for_checkout_rejects_empty_cart():
    with pytest.raises(EmptyCartError):
        validate_for_checkout(CartState())


def test_validate_for_checkout_accepts_valid_cart():
    validate_for_checkout(_cart(AddItem(TOMATO, 2)))
