"""Order Feedback — post-delivery rating by the customer who placed the order.

Invariants:
    - Only the owning customer may rate an order
    - Only a delivered order can be rated; every other status, terminal or not,
      is rejected with the current status named
    - Feedback is written once: a second submission is rejected, never merged
    - rating and every sub-rating are integers in 1..5; comment ≤ 500 characters

Design Decisions:
    - Feedback is not a status transition: it leaves status and status_history
      untouched, so it can never reopen or advance a terminal order
    - Validation runs on both sides (client before sending, backend before writing)
"""

from dataclasses import replace
from datetime import datetime

from fulfillment.core.domain_types import Actor, ActorRole, OrderStatus
from fulfillment.core.errors import AuthorizationError, StateError, ValidationError
from fulfillment.core.order import Order, OrderFeedback

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 500

_SUB_RATINGS = ("product_quality", "delivery_service", "packaging")


def _check_rating(value: object, field: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number.", field)
    if not MIN_RATING <= value <= MAX_RATING:
        raise ValidationError(
            f"{field} must be between {MIN_RATING} and {MAX_RATING}.", field,
        )


def validate_feedback(feedback: OrderFeedback) -> OrderFeedback:
    """Range-check the ratings and normalize the comment (stripped, None if blank)."""
    _check_rating(feedback.rating, "rating")
    for field in _SUB_RATINGS:
        value = getattr(feedback, field)
        if value is not None:
            _check_rating(value, field)

    comment = feedback.comment.strip() if feedback.comment else None
    if comment and len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(
            f"Comment cannot be longer than {MAX_COMMENT_LENGTH} characters.", "comment",
        )
    return replace(feedback, comment=comment or None)


def check_feedback_allowed(order: Order, actor: Actor) -> None:
    if actor.role != ActorRole.CUSTOMER or actor.id != order.customer_id:
        raise AuthorizationError(
            "Only the customer who placed the order can rate it.",
            actor.role.value, "NOT_ORDER_OWNER",
        )
    if order.status != OrderStatus.DELIVERED:
        raise StateError(
            f"Feedback can only be submitted for delivered orders (order is {order.status.value})",
            order.status.value, None, "FEEDBACK_NOT_ALLOWED",
        )
    if order.feedback is not None:
        raise StateError(
            "Feedback has already been submitted for this order",
            order.status.value, None, "FEEDBACK_ALREADY_SUBMITTED",
        )


def attach_feedback(
    order: Order, actor: Actor, feedback: OrderFeedback, now: datetime,
) -> Order:
    """Return `order` carrying the validated feedback, stamped at `now`."""
    check_feedback_allowed(order, actor)
    accepted = replace(validate_feedback(feedback), submitted_at=now)
    return replace(order, feedback=accepted, updated_at=now)
