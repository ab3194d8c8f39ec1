"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - OrderId, ActorId wrap UUIDs; ProductId is the catalogue's opaque string id
    - All valid states encoded as Enums — no raw string matching
    - TERMINAL_STATUSES is the single source of truth for terminal states

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (the backend contract is JSON)
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

OrderId = NewType("OrderId", UUID)
ActorId = NewType("ActorId", UUID)
ProductId = NewType("ProductId", str)


# ─── Defaults (overridable through Settings) ─────────────────────

REQUIRED_GCASH_ORDERS_FOR_COD = 5
FREE_SHIPPING_THRESHOLD = 1000.0
FLAT_SHIPPING_FEE = 50.0


# ─── Enums ───────────────────────────────────────────────────────

class OrderStatus(str, Enum):
    """Order lifecycle states — maps to DB `status` column."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.FAILED,
    OrderStatus.CANCELLED,
})


class PaymentMethod(str, Enum):
    """Checkout payment channels."""
    GCASH = "gcash"
    COD = "cod"


class ActorRole(str, Enum):
    """Who is acting on an order. SYSTEM is the payment-confirmation event."""
    CUSTOMER = "customer"
    ADMIN = "admin"
    DRIVER = "driver"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """The role and identity behind a request. SYSTEM actors carry no id."""
    role: ActorRole
    id: ActorId | None = None
