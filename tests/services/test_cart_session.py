"""Cart Session — persistence, listener publication and failure isolation.

Invariants:
    - State survives a restart through the storage blob
    - A failed write raises StorageError and leaves state and listeners untouched
    - A rejected action writes nothing
"""

import pytest

from fulfillment.core.cart_ledger import CartState, Product
from fulfillment.core.domain_types import ProductId
from fulfillment.core.errors import CapacityError, StorageError
from fulfillment.infrastructure.cart_storage import FileCartStorage, MemoryCartStorage
from fulfillment.services.cart_service import CartSession

TOMATO = Product(ProductId("tomato"), "Tomatoes", 85.0, 10, "vegetables", "kg")
LETTUCE = Product(ProductId("lettuce"), "Lettuce", 120.0, 5, "vegetables", "head")


class _BrokenStorage(MemoryCartStorage):
    def set(self, key: str, value: str) -> None:
        raise OSError("disk full")


# -- Persistence -----------------------------------------------------------------

def test_cart_survives_restart_on_disk(tmp_path):
    first = CartSession(FileCartStorage(tmp_path))
    first.add_item(TOMATO, 2)
    first.add_item(LETTUCE)

    second = CartSession(FileCartStorage(tmp_path))
    assert second.state == first.state
    assert second.state.subtotal == pytest.approx(290.0)


def test_corrupt_file_loads_empty_cart(tmp_path):
    storage = FileCartStorage(tmp_path)
    storage.set("campo-vida-cart", "{definitely not json")
    assert CartSession(storage).state == CartState()


def test_missing_directory_loads_empty_cart(tmp_path):
    assert CartSession(FileCartStorage(tmp_path / "nowhere")).state.is_empty


def test_keys_are_isolated():
    storage = MemoryCartStorage()
    CartSession(storage, key="alice").add_item(TOMATO)
    assert CartSession(storage, key="bob").state.is_empty


def test_clear_persists_empty_cart():
    storage = MemoryCartStorage()
    session = CartSession(storage)
    session.add_item(TOMATO, 3)
    session.clear()
    assert CartSession(storage).state.is_empty


# -- Failures -----------------------------------------------------------------------

def test_write_failure_keeps_previous_state():
    session = CartSession(_BrokenStorage())
    seen = []
    session.subscribe(seen.append)

    with pytest.raises(StorageError) as exc:
        session.add_item(TOMATO)
    assert exc.value.key == "campo-vida-cart"
    assert session.state.is_empty
    assert seen == []


def test_rejected_action_writes_nothing():
    storage = MemoryCartStorage()
    session = CartSession(storage)
    session.add_item(LETTUCE, 4)
    blob = storage.data["campo-vida-cart"]

    with pytest.raises(CapacityError):
        session.add_item(LETTUCE, 2)
    assert storage.data["campo-vida-cart"] == blob
    assert session.quantity_of(LETTUCE.id) == 4


# -- Listeners / options -------------------------------------------------------------

def test_listeners_receive_each_new_state_until_unsubscribed():
    session = CartSession(MemoryCartStorage())
    seen = []
    unsubscribe = session.subscribe(seen.append)

    session.add_item(TOMATO)
    session.update_quantity(TOMATO.id, 4)
    unsubscribe()
    session.remove_item(TOMATO.id)

    assert [s.item_count for s in seen] == [1, 4]


def test_clamp_on_update_option():
    strict = CartSession(MemoryCartStorage())
    strict.add_item(LETTUCE)
    with pytest.raises(CapacityError):
        strict.update_quantity(LETTUCE.id, 9)

    lenient = CartSession(MemoryCartStorage(), clamp_on_update=True)
    lenient.add_item(LETTUCE)
    lenient.update_quantity(LETTUCE.id, 9)
    assert lenient.quantity_of(LETTUCE.id) == 5


def test_reload_picks_up_external_write():
    storage = MemoryCartStorage()
    session = CartSession(storage)
    CartSession(storage).add_item(TOMATO, 2)
    assert session.state.is_empty
    assert session.reload().item_count == 2
