"""Order Snapshot — JSON codec for Order, the wire contract of the orders API.

Invariants:
    - order_to_snapshot produces a JSON-safe dict (ISO datetimes, Enum values, str UUIDs)
    - order_from_snapshot reconstructs an Order from any snapshot the backend emits
    - Optional keys missing from the payload fall back to Order defaults
    - A payload missing required keys raises ValidationError (code MALFORMED_ORDER)

Design Decisions:
    - One codec for both sides: the backend renders with it and the client parses
      with it, so the contract cannot drift between the two
    - Proof, feedback and history have their own small codecs, reused by the ORM mapping
"""

from datetime import date, datetime
from uuid import UUID

from fulfillment.core.domain_types import (
    ActorId, ActorRole, OrderId, OrderStatus, PaymentMethod, ProductId,
)
from fulfillment.core.errors import ValidationError
from fulfillment.core.order import (
    Order, OrderFeedback, OrderItem, ProofOfDelivery, StatusChange,
)


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _parse_uuid(value: str | None) -> UUID | None:
    return UUID(str(value)) if value else None


# ─── Items ───────────────────────────────────────────────────────

def items_to_list(items: tuple[OrderItem, ...]) -> list[dict]:
    return [
        {
            "product_id": item.product_id,
            "name": item.name,
            "unit_price": item.unit_price,
            "quantity": item.quantity,
            "subtotal": item.subtotal,
            "category": item.category,
            "unit": item.unit,
        }
        for item in items
    ]


def items_from_list(data: list[dict]) -> tuple[OrderItem, ...]:
    return tuple(
        OrderItem(
            product_id=ProductId(str(raw["product_id"])),
            name=raw["name"],
            unit_price=float(raw["unit_price"]),
            quantity=int(raw["quantity"]),
            subtotal=float(raw["subtotal"]),
            category=raw.get("category"),
            unit=raw.get("unit"),
        )
        for raw in data
    )


# ─── Proof of delivery ───────────────────────────────────────────

def proof_to_dict(proof: ProofOfDelivery | None) -> dict | None:
    if proof is None:
        return None
    return {
        "recipient_name": proof.recipient_name,
        "captured_at": _iso(proof.captured_at),
        "photo": proof.photo,
        "signature": proof.signature,
        "notes": proof.notes,
    }


def proof_from_dict(data: dict | None) -> ProofOfDelivery | None:
    if not data:
        return None
    return ProofOfDelivery(
        recipient_name=data.get("recipient_name") or "",
        captured_at=_parse_datetime(data.get("captured_at")),
        photo=data.get("photo"),
        signature=data.get("signature"),
        notes=data.get("notes"),
    )


# ─── Feedback ──────────────────────────────────────────────────

def feedback_to_dict(feedback: OrderFeedback | None) -> dict | None:
    if feedback is None:
        return None
    return {
        "rating": feedback.rating,
        "comment": feedback.comment,
        "product_quality": feedback.product_quality,
        "delivery_service": feedback.delivery_service,
        "packaging": feedback.packaging,
        "would_recommend": feedback.would_recommend,
        "submitted_at": _iso(feedback.submitted_at),
    }


def feedback_from_dict(data: dict | None) -> OrderFeedback | None:
    if not data:
        return None
    return OrderFeedback(
        rating=int(data["rating"]),
        comment=data.get("comment"),
        product_quality=data.get("product_quality"),
        delivery_service=data.get("delivery_service"),
        packaging=data.get("packaging"),
        would_recommend=data.get("would_recommend"),
        submitted_at=_parse_datetime(data.get("submitted_at")),
    )


# ─── Status history ──────────────────────────────────────────────

def change_to_dict(change: StatusChange) -> dict:
    return {
        "from_status": change.from_status.value,
        "to_status": change.to_status.value,
        "actor_role": change.actor_role.value,
        "actor_id": str(change.actor_id) if change.actor_id else None,
        "timestamp": _iso(change.timestamp),
        "notes": change.notes,
    }


def change_from_dict(data: dict) -> StatusChange:
    actor_id = _parse_uuid(data.get("actor_id"))
    return StatusChange(
        from_status=OrderStatus(data["from_status"]),
        to_status=OrderStatus(data["to_status"]),
        actor_role=ActorRole(data["actor_role"]),
        actor_id=ActorId(actor_id) if actor_id else None,
        timestamp=datetime.fromisoformat(data["timestamp"]),
        notes=data.get("notes"),
    )


# ─── Order ───────────────────────────────────────────────────────

def order_to_snapshot(order: Order) -> dict:
    """Serialize Order to a JSON-safe dict. Pure, no IO."""
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "customer_name": order.customer_name,
        "items": items_to_list(order.items),
        "item_count": order.item_count,
        "subtotal": order.subtotal,
        "shipping_fee": order.shipping_fee,
        "discount": order.discount,
        "total": order.total,
        "payment_method": order.payment_method.value,
        "promo_code": order.promo_code,
        "status": order.status.value,
        "delivery_address": order.delivery_address,
        "delivery_date": _iso(order.delivery_date),
        "delivery_window": order.delivery_window,
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
        "driver_id": str(order.driver_id) if order.driver_id else None,
        "assigned_at": _iso(order.assigned_at),
        "delivery_started_at": _iso(order.delivery_started_at),
        "delivered_at": _iso(order.delivered_at),
        "proof_of_delivery": proof_to_dict(order.proof_of_delivery),
        "failure_reason": order.failure_reason,
        "cancellation_reason": order.cancellation_reason,
        "feedback": feedback_to_dict(order.feedback),
        "status_history": [change_to_dict(c) for c in order.status_history],
    }


def order_from_snapshot(data: dict) -> Order:
    """Reconstruct an Order from a snapshot dict."""
    try:
        driver_id = _parse_uuid(data.get("driver_id"))
        return Order(
            id=OrderId(UUID(str(data["id"]))),
            order_number=data["order_number"],
            customer_id=ActorId(UUID(str(data["customer_id"]))),
            customer_name=data.get("customer_name") or "",
            items=items_from_list(data.get("items") or []),
            subtotal=float(data["subtotal"]),
            shipping_fee=float(data["shipping_fee"]),
            discount=float(data.get("discount") or 0.0),
            total=float(data["total"]),
            payment_method=PaymentMethod(data["payment_method"]),
            promo_code=data.get("promo_code"),
            status=OrderStatus(data["status"]),
            delivery_address=data["delivery_address"],
            delivery_date=_parse_date(data.get("delivery_date")),
            delivery_window=data.get("delivery_window"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            driver_id=ActorId(driver_id) if driver_id else None,
            assigned_at=_parse_datetime(data.get("assigned_at")),
            delivery_started_at=_parse_datetime(data.get("delivery_started_at")),
            delivered_at=_parse_datetime(data.get("delivered_at")),
            proof_of_delivery=proof_from_dict(data.get("proof_of_delivery")),
            failure_reason=data.get("failure_reason"),
            cancellation_reason=data.get("cancellation_reason"),
            feedback=feedback_from_dict(data.get("feedback")),
            status_history=tuple(
                change_from_dict(c) for c in data.get("status_history") or []
            ),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(
            f"Malformed order payload: {e}", "order", "MALFORMED_ORDER",
        ) from e
