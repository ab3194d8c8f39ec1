"""Cart Snapshot — serialization / deserialization of CartState for durable storage.

Invariants:
    - cart_to_blob produces a JSON string (only lines are stored; totals are derived)
    - cart_from_blob never raises: missing, unreadable (including pathologically
      nested) or invariant-violating blobs yield an empty cart
    - Prices must be finite and non-negative; counts must be real ints, not bools
    - Totals are always recomputed on load, never trusted from storage

Design Decisions:
    - Whole-blob rejection over per-line repair: a half-trusted cart would hide
      corruption from the user
    - Accepts the bare-list layout as well as the versioned dict layout
"""

import json
import logging
import math

from fulfillment.core.cart_ledger import CartItem, CartState, cart_with_items
from fulfillment.core.domain_types import ProductId

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def cart_to_snapshot(state: CartState) -> dict:
    """Serialize CartState to a JSON-safe dict. Pure, no IO."""
    return {
        "version": SNAPSHOT_VERSION,
        "items": [
            {
                "product_id": item.product_id,
                "name": item.name,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "max_stock": item.max_stock,
                "category": item.category,
                "unit": item.unit,
                "image": item.image,
            }
            for item in state.items
        ],
    }


def cart_to_blob(state: CartState) -> str:
    return json.dumps(cart_to_snapshot(state), ensure_ascii=False)


def cart_from_snapshot(data: object) -> CartState:
    """Reconstruct CartState from snapshot data; empty cart on any defect."""
    if isinstance(data, dict):
        raw_items = data.get("items", [])
    else:
        raw_items = data
    if not isinstance(raw_items, list):
        return CartState()

    try:
        items = tuple(_item_from_dict(raw) for raw in raw_items)
    except (KeyError, TypeError, ValueError, OverflowError) as e:
        logger.warning(f"Discarding unreadable cart snapshot: {e}")
        return CartState()

    product_ids = [i.product_id for i in items]
    if len(set(product_ids)) != len(product_ids):
        logger.warning("Discarding cart snapshot with duplicate product lines")
        return CartState()
    return cart_with_items(items)


def cart_from_blob(blob: str | None) -> CartState:
    if not blob:
        return CartState()
    try:
        data = json.loads(blob)
    except (TypeError, ValueError, RecursionError) as e:
        logger.warning(f"Discarding corrupt cart blob: {type(e).__name__}")
        return CartState()
    return cart_from_snapshot(data)


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _item_from_dict(raw: dict) -> CartItem:
    quantity = raw["quantity"]
    max_stock = raw["max_stock"]
    if not _is_count(quantity) or not _is_count(max_stock):
        raise TypeError("quantity and max_stock must be integers")
    if not 1 <= quantity <= max_stock:
        raise ValueError(f"quantity {quantity} outside 1..{max_stock}")
    unit_price = float(raw["unit_price"])
    if not math.isfinite(unit_price) or unit_price < 0:
        raise ValueError(f"unit price {unit_price} is not a finite non-negative number")
    return CartItem(
        product_id=ProductId(str(raw["product_id"])),
        name=str(raw["name"]),
        unit_price=unit_price,
        quantity=quantity,
        max_stock=max_stock,
        category=raw.get("category"),
        unit=raw.get("unit"),
        image=raw.get("image"),
    )
