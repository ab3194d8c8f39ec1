"""Cart Session — owns one CartState: reduce, persist, then publish.

Invariants:
    - Each action is one unit: reducer → durable write → state swap → listeners
    - A rejected action (reducer error) or failed write leaves the previous
      state current and unpublished-over
    - Loading never raises: a missing or corrupt blob yields an empty cart

Design Decisions:
    - Explicitly constructed and injected (no module-level cart singleton)
    - Listeners are plain callables; the UI layer subscribes, tests assert on them
"""

import logging
from typing import Callable

from fulfillment.core.cart_ledger import (
    AddItem, CartAction, CartState, ClearCart, Product, RemoveItem, UpdateQuantity,
    cart_reducer, item_quantity,
)
from fulfillment.core.cart_snapshot import cart_from_blob, cart_to_blob
from fulfillment.core.domain_types import ProductId
from fulfillment.core.errors import StorageError
from fulfillment.core.repository_protocols import KeyValueStorage

logger = logging.getLogger(__name__)

CartListener = Callable[[CartState], None]


class CartSession:
    """Client-owned cart bound to one storage key."""

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = "campo-vida-cart",
        clamp_on_update: bool = False,
    ):
        self.storage = storage
        self.key = key
        self.clamp_on_update = clamp_on_update
        self._listeners: list[CartListener] = []
        self._state = cart_from_blob(storage.get(key))

    @property
    def state(self) -> CartState:
        return self._state

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register `listener`; returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, action: CartAction) -> CartState:
        new_state = cart_reducer(self._state, action)
        try:
            self.storage.set(self.key, cart_to_blob(new_state))
        except OSError as e:
            logger.error(f"Cart write failed for key {self.key}: {e}")
            raise StorageError(str(e), self.key) from e
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)
        return new_state

    # ─── Actions ─────────────────────────────────────────────────

    def add_item(self, product: Product, quantity: int = 1) -> CartState:
        return self.dispatch(AddItem(product, quantity))

    def remove_item(self, product_id: ProductId) -> CartState:
        return self.dispatch(RemoveItem(product_id))

    def update_quantity(self, product_id: ProductId, quantity: int) -> CartState:
        return self.dispatch(UpdateQuantity(product_id, quantity, self.clamp_on_update))

    def clear(self) -> CartState:
        return self.dispatch(ClearCart())

    def quantity_of(self, product_id: ProductId) -> int:
        return item_quantity(self._state, product_id)

    def reload(self) -> CartState:
        """Re-read the persisted blob (e.g. after another window wrote it)."""
        self._state = cart_from_blob(self.storage.get(self.key))
        for listener in list(self._listeners):
            listener(self._state)
        return self._state
