"""Order Schemas — Pydantic request models for the orders API.

Invariants:
    - Shape validation only (types, ranges, lengths); business rules such as
      empty carts, promo minimums and transition guards stay in core/ so they
      surface with their own error codes
    - delivery_address stripped; status values restricted to OrderStatus

Design Decisions:
    - field_validator for side-effect-free transforms (strip) — keeps models pure
    - Responses are core/order_snapshot dicts, not response models: one codec
      shared with the client
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from fulfillment.core.domain_types import OrderStatus, PaymentMethod


class CartLineIn(BaseModel):
    """One cart line as sent at checkout."""
    product_id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=1)
    max_stock: int = Field(ge=0)
    category: str | None = Field(None, max_length=100)
    unit: str | None = Field(None, max_length=40)


class OrderCreate(BaseModel):
    """Checkout submission — the backend re-prices and re-checks COD."""
    items: list[CartLineIn]
    payment_method: PaymentMethod
    delivery_address: str = Field(max_length=1000)
    delivery_date: date | None = None
    delivery_window: str | None = Field(None, max_length=40)
    promo_code: str | None = Field(None, max_length=40)

    @field_validator("delivery_address")
    @classmethod
    def strip_address(cls, v: str) -> str:
        return v.strip()


class ProofOfDeliveryIn(BaseModel):
    """Proof payload; recipient_name emptiness is a domain rule, not a shape rule."""
    recipient_name: str = Field("", max_length=200)
    photo: str | None = None
    signature: str | None = None
    notes: str | None = Field(None, max_length=2000)
    captured_at: datetime | None = None


class StatusUpdate(BaseModel):
    """Requested transition for PUT /orders/{id}/status and the driver variant."""
    status: OrderStatus
    notes: str | None = Field(None, max_length=2000)
    reason: str | None = Field(None, max_length=2000)
    override: bool = False
    proof_of_delivery: ProofOfDeliveryIn | None = None


class AvailabilityUpdate(BaseModel):
    is_available: bool


class DriverAssignment(BaseModel):
    driver_id: UUID


class PaymentConfirmation(BaseModel):
    """Payment-provider callback: the GCash payment for this order settled."""
    order_id: UUID
    reference: str | None = Field(None, max_length=100)


class FeedbackCreate(BaseModel):
    """Post-delivery rating; strict ints so `true` is not read as a rating of 1."""
    rating: int = Field(ge=1, le=5, strict=True)
    comment: str | None = Field(None, max_length=500)
    product_quality: int | None = Field(None, ge=1, le=5, strict=True)
    delivery_service: int | None = Field(None, ge=1, le=5, strict=True)
    packaging: int | None = Field(None, ge=1, le=5, strict=True)
    would_recommend: bool | None = None
