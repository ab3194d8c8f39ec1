"""Order Feedback — delivered-only, owner-only, once."""

from datetime import timedelta
from uuid import uuid4

import pytest

from fulfillment.core.domain_types import Actor, ActorId, ActorRole, OrderStatus
from fulfillment.core.errors import AuthorizationError, StateError, ValidationError
from fulfillment.core.order import OrderFeedback
from fulfillment.core.order_feedback import attach_feedback, validate_feedback
from fulfillment.core.order_snapshot import order_from_snapshot, order_to_snapshot

S = OrderStatus
OWNER = ActorId(uuid4())


def _owner() -> Actor:
    return Actor(ActorRole.CUSTOMER, OWNER)


def test_delivered_order_takes_feedback_and_keeps_status(make_order, now):
    order = make_order(S.DELIVERED, customer_id=OWNER)
    later = now + timedelta(hours=2)
    rated = attach_feedback(
        order, _owner(),
        OrderFeedback(5, "  Fresh and on time ", product_quality=5, would_recommend=True),
        later,
    )
    assert rated.status == S.DELIVERED
    assert rated.status_history == order.status_history
    assert rated.feedback.comment == "Fresh and on time"
    assert rated.feedback.submitted_at == later
    assert rated.updated_at == later


def test_feedback_survives_snapshot(make_order, now):
    rated = attach_feedback(
        make_order(S.DELIVERED, customer_id=OWNER), _owner(),
        OrderFeedback(4, packaging=3, would_recommend=False), now,
    )
    assert order_from_snapshot(order_to_snapshot(rated)).feedback == rated.feedback


@pytest.mark.parametrize("status", [S.PENDING, S.OUT_FOR_DELIVERY, S.CANCELLED, S.FAILED])
def test_only_delivered_orders_can_be_rated(make_order, now, status):
    with pytest.raises(StateError) as exc:
        attach_feedback(make_order(status, customer_id=OWNER), _owner(), OrderFeedback(5), now)
    assert exc.value.code == "FEEDBACK_NOT_ALLOWED"
    assert exc.value.current_status == status.value


@pytest.mark.parametrize("actor", [
    Actor(ActorRole.CUSTOMER, ActorId(uuid4())),
    Actor(ActorRole.ADMIN, ActorId(uuid4())),
    Actor(ActorRole.DRIVER, OWNER),
])
def test_only_the_owner_can_rate(make_order, now, actor):
    with pytest.raises(AuthorizationError) as exc:
        attach_feedback(make_order(S.DELIVERED, customer_id=OWNER), actor, OrderFeedback(5), now)
    assert exc.value.code == "NOT_ORDER_OWNER"


def test_second_feedback_is_rejected(make_order, now):
    rated = attach_feedback(
        make_order(S.DELIVERED, customer_id=OWNER), _owner(), OrderFeedback(5), now,
    )
    with pytest.raises(StateError) as exc:
        attach_feedback(rated, _owner(), OrderFeedback(1, "changed my mind"), now)
    assert exc.value.code == "FEEDBACK_ALREADY_SUBMITTED"
    assert rated.feedback.rating == 5


@pytest.mark.parametrize("feedback, field", [
    (OrderFeedback(0), "rating"),
    (OrderFeedback(6), "rating"),
    (OrderFeedback(True), "rating"),
    (OrderFeedback(4.5), "rating"),
    (OrderFeedback(5, product_quality=9), "product_quality"),
    (OrderFeedback(5, delivery_service=0), "delivery_service"),
    (OrderFeedback(5, comment="x" * 501), "comment"),
])
def test_out_of_range_feedback_rejected(feedback, field):
    with pytest.raises(ValidationError) as exc:
        validate_feedback(feedback)
    assert exc.value.field == field


def test_blank_comment_becomes_none():
    assert validate_feedback(OrderFeedback(3, "   ")).comment is None
    assert validate_feedback(OrderFeedback(3, "x" * 500)).comment == "x" * 500
