"""Order Model — immutable order aggregate, status history and proof of delivery.

Invariants:
    - items are a frozen snapshot of the cart at creation; later cart changes never reach them
    - status_history is append-only: transitions return a new Order with one more entry
    - proof_of_delivery is set only by the delivered transition and never replaced
    - feedback is written at most once, after delivery (core/order_feedback.py)
    - Every new order starts in PENDING

Design Decisions:
    - Frozen dataclasses: the state machine returns new values instead of mutating,
      so a rejected transition cannot leave a half-applied order behind
    - Clock and ids are passed in: creation stays deterministic under test
"""

import secrets
import string
from dataclasses import dataclass
from datetime import date, datetime

from fulfillment.core.cart_ledger import CartItem
from fulfillment.core.domain_types import (
    ActorId, ActorRole, OrderId, OrderStatus, PaymentMethod, ProductId,
    TERMINAL_STATUSES,
)
from fulfillment.core.errors import EmptyCartError, ValidationError
from fulfillment.core.pricing import PriceSummary

_ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class OrderItem:
    product_id: ProductId
    name: str
    unit_price: float
    quantity: int
    subtotal: float
    category: str | None = None
    unit: str | None = None


@dataclass(frozen=True)
class ProofOfDelivery:
    recipient_name: str
    captured_at: datetime | None = None
    photo: str | None = None
    signature: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class OrderFeedback:
    """Customer rating of a delivered order (1-5 scale throughout)."""
    rating: int
    comment: str | None = None
    product_quality: int | None = None
    delivery_service: int | None = None
    packaging: int | None = None
    would_recommend: bool | None = None
    submitted_at: datetime | None = None


@dataclass(frozen=True)
class StatusChange:
    from_status: OrderStatus
    to_status: OrderStatus
    actor_role: ActorRole
    actor_id: ActorId | None
    timestamp: datetime
    notes: str | None = None


@dataclass(frozen=True)
class Order:
    id: OrderId
    order_number: str
    customer_id: ActorId
    customer_name: str
    items: tuple[OrderItem, ...]
    subtotal: float
    shipping_fee: float
    discount: float
    total: float
    payment_method: PaymentMethod
    delivery_address: str
    created_at: datetime
    updated_at: datetime
    status: OrderStatus = OrderStatus.PENDING
    promo_code: str | None = None
    delivery_date: date | None = None
    delivery_window: str | None = None
    status_history: tuple[StatusChange, ...] = ()
    driver_id: ActorId | None = None
    assigned_at: datetime | None = None
    delivery_started_at: datetime | None = None
    delivered_at: datetime | None = None
    proof_of_delivery: ProofOfDelivery | None = None
    failure_reason: str | None = None
    cancellation_reason: str | None = None
    feedback: OrderFeedback | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


def generate_order_number(now: datetime, suffix: str | None = None) -> str:
    """CV<YYYYMMDD><4 alnum>, e.g. CV20261017K3QZ."""
    if suffix is None:
        suffix = "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(4))
    return f"CV{now:%Y%m%d}{suffix}"


def snapshot_items(cart_items: tuple[CartItem, ...]) -> tuple[OrderItem, ...]:
    """Freeze cart lines into order lines."""
    return tuple(
        OrderItem(
            product_id=item.product_id,
            name=item.name,
            unit_price=item.unit_price,
            quantity=item.quantity,
            subtotal=item.line_total,
            category=item.category,
            unit=item.unit,
        )
        for item in cart_items
    )


def create_order(
    *,
    order_id: OrderId,
    order_number: str,
    customer_id: ActorId,
    customer_name: str,
    items: tuple[OrderItem, ...],
    pricing: PriceSummary,
    payment_method: PaymentMethod,
    delivery_address: str,
    now: datetime,
    delivery_date: date | None = None,
    delivery_window: str | None = None,
) -> Order:
    """Build a PENDING order from frozen items and a price summary."""
    if not items:
        raise EmptyCartError()
    if not delivery_address or not delivery_address.strip():
        raise ValidationError("Delivery address is required.", "delivery_address")

    return Order(
        id=order_id,
        order_number=order_number,
        customer_id=customer_id,
        customer_name=customer_name,
        items=items,
        subtotal=pricing.subtotal,
        shipping_fee=pricing.shipping_fee,
        discount=pricing.discount,
        total=pricing.total,
        payment_method=payment_method,
        promo_code=pricing.promo_code,
        delivery_address=delivery_address.strip(),
        delivery_date=delivery_date,
        delivery_window=delivery_window,
        created_at=now,
        updated_at=now,
    )
