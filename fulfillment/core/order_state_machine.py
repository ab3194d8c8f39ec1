"""Order State Machine — role-gated status transitions with append-only history.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - TRANSITIONS lists the only adjacent edges; anything else is InvalidTransitionError
      naming current and requested status, never coerced to the nearest valid step
    - DELIVERED, FAILED, CANCELLED accept no transition (TerminalStateError)
    - CAPABILITIES is the single {role → permitted edges} table; views never re-check roles
    - DELIVERED requires a ProofOfDelivery with a non-empty recipient_name, attached in
      the same returned Order as the status flip
    - FAILED requires a non-empty reason; admin cancellation requires a reason;
      cancelling an order already out for delivery requires override=True

Design Decisions:
    - Raise typed errors (not error dicts): the backend maps them straight to the
      REST envelope and the client rebuilds the same types (ADR: one error shape)
    - Check order: terminal → adjacency → role → ownership → payload guards, so the
      most fundamental reason is the one reported
"""

from dataclasses import dataclass, replace
from datetime import datetime

from fulfillment.core.domain_types import (
    Actor, ActorId, ActorRole, OrderStatus, TERMINAL_STATUSES,
)
from fulfillment.core.errors import (
    AuthorizationError, InvalidTransitionError, StateError, TerminalStateError,
    ValidationError,
)
from fulfillment.core.order import Order, ProofOfDelivery, StatusChange

S = OrderStatus

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.PREPARING, S.CANCELLED}),
    S.PREPARING: frozenset({S.OUT_FOR_DELIVERY, S.CANCELLED}),
    S.OUT_FOR_DELIVERY: frozenset({S.DELIVERED, S.FAILED, S.CANCELLED}),
    S.DELIVERED: frozenset(),
    S.FAILED: frozenset(),
    S.CANCELLED: frozenset(),
}

CAPABILITIES: dict[ActorRole, frozenset[tuple[OrderStatus, OrderStatus]]] = {
    ActorRole.CUSTOMER: frozenset({
        (S.PENDING, S.CANCELLED),
    }),
    ActorRole.ADMIN: frozenset({
        (S.PENDING, S.CONFIRMED),
        (S.CONFIRMED, S.PREPARING),
        (S.PENDING, S.CANCELLED),
        (S.CONFIRMED, S.CANCELLED),
        (S.PREPARING, S.CANCELLED),
        (S.OUT_FOR_DELIVERY, S.CANCELLED),
    }),
    ActorRole.DRIVER: frozenset({
        (S.CONFIRMED, S.PREPARING),
        (S.PREPARING, S.OUT_FOR_DELIVERY),
        (S.OUT_FOR_DELIVERY, S.DELIVERED),
        (S.OUT_FOR_DELIVERY, S.FAILED),
    }),
    ActorRole.SYSTEM: frozenset({
        (S.PENDING, S.CONFIRMED),
    }),
}

# Forward path used by the "next status" shortcut
FORWARD_PATH: dict[OrderStatus, OrderStatus] = {
    S.PENDING: S.CONFIRMED,
    S.CONFIRMED: S.PREPARING,
    S.PREPARING: S.OUT_FOR_DELIVERY,
    S.OUT_FOR_DELIVERY: S.DELIVERED,
}

ASSIGNABLE_STATUSES: frozenset[OrderStatus] = frozenset({S.PENDING, S.CONFIRMED, S.PREPARING})

DEFAULT_CUSTOMER_CANCEL_REASON = "Cancelled by customer"


@dataclass(frozen=True)
class TransitionRules:
    """Configurable guards (see Settings.require_delivery_photo)."""
    require_delivery_photo: bool = False


@dataclass(frozen=True)
class TransitionRequest:
    actor: Actor
    target: OrderStatus
    notes: str | None = None
    reason: str | None = None
    proof: ProofOfDelivery | None = None
    override: bool = False


# ─── Guards ─────────────────────────────────────────────────────

def check_adjacent(current: OrderStatus, target: OrderStatus) -> None:
    """Terminal and adjacency checks, independent of who is asking."""
    if current in TERMINAL_STATUSES:
        raise TerminalStateError(current.value, target.value)
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)


def check_capability(order: Order, actor: Actor, target: OrderStatus) -> None:
    """Role table lookup plus ownership (own order / assigned driver)."""
    edge = (order.status, target)
    if edge not in CAPABILITIES.get(actor.role, frozenset()):
        raise AuthorizationError(
            f"Role '{actor.role.value}' may not change status from "
            f"{order.status.value} to {target.value}",
            actor.role.value,
        )

    if actor.role == ActorRole.CUSTOMER and actor.id != order.customer_id:
        raise AuthorizationError("Order does not belong to you", actor.role.value)

    if actor.role == ActorRole.DRIVER:
        if target == S.OUT_FOR_DELIVERY and order.driver_id is None:
            raise StateError(
                "Order has no assigned driver; assign one before dispatch",
                order.status.value, target.value, "DRIVER_NOT_ASSIGNED",
            )
        if order.driver_id is None or actor.id != order.driver_id:
            raise AuthorizationError(
                "Delivery not found or not assigned to you", actor.role.value,
            )


def validate_proof(proof: ProofOfDelivery | None, require_photo: bool = False) -> None:
    """Proof must name the recipient; photo only when configured as mandatory."""
    if proof is None:
        raise ValidationError(
            "Proof of delivery is required to mark an order delivered.",
            "proof_of_delivery",
        )
    if not proof.recipient_name or not proof.recipient_name.strip():
        raise ValidationError("Recipient name is required.", "recipient_name")
    if require_photo and not proof.photo:
        raise ValidationError("A delivery photo is required.", "photo")


def require_reason(reason: str | None, field: str = "reason") -> str:
    if not reason or not reason.strip():
        raise ValidationError("A reason is required.", field)
    return reason.strip()


def check_transition(
    order: Order, request: TransitionRequest, rules: TransitionRules = TransitionRules(),
) -> None:
    """Run every guard for `request` against `order`. Raises on the first violation."""
    target = request.target
    check_adjacent(order.status, target)
    check_capability(order, request.actor, target)

    if target == S.DELIVERED:
        validate_proof(request.proof, rules.require_delivery_photo)
    elif target == S.FAILED:
        require_reason(request.reason)
    elif target == S.CANCELLED:
        if request.actor.role != ActorRole.CUSTOMER:
            require_reason(request.reason)
        if order.status == S.OUT_FOR_DELIVERY and not request.override:
            raise StateError(
                "Order is already out for delivery; cancelling requires an override",
                order.status.value, target.value, "OVERRIDE_REQUIRED",
            )


# ─── Transition ─────────────────────────────────────────────────

def apply_transition(
    order: Order,
    request: TransitionRequest,
    now: datetime,
    rules: TransitionRules = TransitionRules(),
) -> Order:
    """Validate and apply one transition, returning the new Order. Pure."""
    check_transition(order, request, rules)
    target = request.target

    updates: dict = {}
    notes = request.notes
    if target == S.OUT_FOR_DELIVERY:
        updates["delivery_started_at"] = now
    elif target == S.DELIVERED:
        proof = request.proof
        updates["proof_of_delivery"] = replace(
            proof,
            recipient_name=proof.recipient_name.strip(),
            captured_at=proof.captured_at or now,
        )
        updates["delivered_at"] = now
        notes = notes or proof.notes
    elif target == S.FAILED:
        updates["failure_reason"] = request.reason.strip()
        notes = notes or updates["failure_reason"]
    elif target == S.CANCELLED:
        reason = (request.reason or "").strip() or DEFAULT_CUSTOMER_CANCEL_REASON
        updates["cancellation_reason"] = reason
        notes = notes or reason

    change = StatusChange(
        from_status=order.status,
        to_status=target,
        actor_role=request.actor.role,
        actor_id=request.actor.id,
        timestamp=now,
        notes=notes,
    )
    return replace(
        order,
        status=target,
        updated_at=now,
        status_history=order.status_history + (change,),
        **updates,
    )


# ─── Queries ────────────────────────────────────────────────────

def permitted_targets(order: Order, actor: Actor) -> list[OrderStatus]:
    """Statuses `actor` may request now (payload guards aside)."""
    targets = []
    for target in sorted(TRANSITIONS[order.status], key=lambda s: s.value):
        try:
            check_capability(order, actor, target)
        except (AuthorizationError, StateError):
            continue
        targets.append(target)
    return targets


def next_status(order: Order, actor: Actor) -> OrderStatus | None:
    """Forward step `actor` may take from the current status, if any."""
    target = FORWARD_PATH.get(order.status)
    if target is None or target not in permitted_targets(order, actor):
        return None
    return target


def assign_driver(
    order: Order, actor: Actor, driver_id: ActorId, driver_available: bool, now: datetime,
) -> Order:
    """Admin assigns (or reassigns) a driver before the order leaves the store."""
    if actor.role != ActorRole.ADMIN:
        raise AuthorizationError("Only admins can assign drivers", actor.role.value)
    if order.status not in ASSIGNABLE_STATUSES:
        raise StateError(
            f"Cannot assign a driver to an order that is {order.status.value}",
            order.status.value, None, "ASSIGNMENT_CLOSED",
        )
    if not driver_available:
        raise ValidationError("Driver is not available", "driver_id")
    return replace(order, driver_id=driver_id, assigned_at=now, updated_at=now)
