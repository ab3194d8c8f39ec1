"""Cart Ledger — pure (state, action) -> state reducer for the shopping cart.

Invariants:
    - 1 <= quantity <= max_stock for every line
    - At most one line per product_id; repeated adds merge quantity
    - subtotal == Σ unit_price·quantity and item_count == Σ quantity, recomputed
      in full on every action (no incremental counters)
    - A rejected action raises before producing any new state

Design Decisions:
    - Frozen dataclasses + tuples: a CartState can be shared freely, the reducer
      always returns a fresh one (ADR: no ambient singleton, unit-testable)
    - Over-stock update_quantity rejects by default; the legacy clamp is an
      explicit flag on the action, chosen by the caller from settings
"""

from dataclasses import dataclass, replace

from fulfillment.core.domain_types import ProductId
from fulfillment.core.errors import (
    CapacityError, EmptyCartError, ResourceNotFoundError, ValidationError,
)


# ─── Values ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class Product:
    """Catalogue view of a product at the moment it is added."""
    id: ProductId
    name: str
    price: float
    stock: int
    category: str | None = None
    unit: str | None = None
    image: str | None = None


@dataclass(frozen=True)
class CartItem:
    """One cart line."""
    product_id: ProductId
    name: str
    unit_price: float
    quantity: int
    max_stock: int
    category: str | None = None
    unit: str | None = None
    image: str | None = None

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)


@dataclass(frozen=True)
class CartState:
    """Ledger contents plus derived totals. Build through cart_with_items()."""
    items: tuple[CartItem, ...] = ()
    subtotal: float = 0.0
    item_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.items


# ─── Actions ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class AddItem:
    product: Product
    quantity: int = 1


@dataclass(frozen=True)
class RemoveItem:
    product_id: ProductId


@dataclass(frozen=True)
class UpdateQuantity:
    product_id: ProductId
    quantity: int
    clamp: bool = False


@dataclass(frozen=True)
class ClearCart:
    pass


@dataclass(frozen=True)
class LoadCart:
    items: tuple[CartItem, ...]


CartAction = AddItem | RemoveItem | UpdateQuantity | ClearCart | LoadCart


# ─── Reducer ─────────────────────────────────────────────────────

def cart_with_items(items: tuple[CartItem, ...]) -> CartState:
    """Build a CartState, recomputing every derived total from the lines."""
    subtotal = round(sum(item.unit_price * item.quantity for item in items), 2)
    item_count = sum(item.quantity for item in items)
    return CartState(items=items, subtotal=subtotal, item_count=item_count)


def cart_reducer(state: CartState, action: CartAction) -> CartState:
    """Apply one action. Pure: raises on rejection, never mutates `state`."""
    if isinstance(action, AddItem):
        return _add_item(state, action)
    if isinstance(action, RemoveItem):
        return cart_with_items(
            tuple(i for i in state.items if i.product_id != action.product_id),
        )
    if isinstance(action, UpdateQuantity):
        return _update_quantity(state, action)
    if isinstance(action, ClearCart):
        return CartState()
    if isinstance(action, LoadCart):
        return cart_with_items(tuple(action.items))
    raise ValidationError(f"Unknown cart action: {type(action).__name__}", "action")


def _add_item(state: CartState, action: AddItem) -> CartState:
    product = action.product
    _require_positive_int(action.quantity)

    existing = get_item(state, product.id)
    current = existing.quantity if existing else 0
    candidate = current + action.quantity
    if candidate > product.stock:
        raise CapacityError(product.id, candidate, product.stock)

    if existing:
        updated = replace(existing, quantity=candidate, max_stock=product.stock)
        items = tuple(updated if i is existing else i for i in state.items)
    else:
        items = state.items + (CartItem(
            product_id=product.id,
            name=product.name,
            unit_price=product.price,
            quantity=candidate,
            max_stock=product.stock,
            category=product.category,
            unit=product.unit,
            image=product.image,
        ),)
    return cart_with_items(items)


def _update_quantity(state: CartState, action: UpdateQuantity) -> CartState:
    if isinstance(action.quantity, bool) or not isinstance(action.quantity, int):
        raise ValidationError("Quantity must be a whole number.", "quantity")
    if action.quantity <= 0:
        return cart_reducer(state, RemoveItem(action.product_id))

    existing = get_item(state, action.product_id)
    if existing is None:
        raise ResourceNotFoundError("Cart item", action.product_id)

    quantity = action.quantity
    if quantity > existing.max_stock:
        if not action.clamp:
            raise CapacityError(existing.product_id, quantity, existing.max_stock)
        quantity = existing.max_stock

    updated = replace(existing, quantity=quantity)
    return cart_with_items(
        tuple(updated if i is existing else i for i in state.items),
    )


def _require_positive_int(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number.", "quantity")
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1.", "quantity")


# ─── Queries ─────────────────────────────────────────────────────

def get_item(state: CartState, product_id: str) -> CartItem | None:
    return next((i for i in state.items if i.product_id == product_id), None)


def is_in_cart(state: CartState, product_id: str) -> bool:
    return get_item(state, product_id) is not None


def item_quantity(state: CartState, product_id: str) -> int:
    item = get_item(state, product_id)
    return item.quantity if item else 0


def validate_for_checkout(state: CartState) -> None:
    """Reject an empty cart or any line above its stock ceiling."""
    if state.is_empty:
        raise EmptyCartError()
    for item in state.items:
        if item.quantity > item.max_stock:
            raise CapacityError(item.product_id, item.quantity, item.max_stock)
