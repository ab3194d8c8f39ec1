"""Error Hierarchy — envelope shape and client-side reconstruction."""

from fulfillment.core.errors import (
    AuthenticationError, CapacityError, CodNotEligibleError, ErrorContext,
    InvalidTransitionError, NetworkError, PromoMinimumNotMetError, ResourceNotFoundError,
    StateError, TerminalStateError, ValidationError, error_from_response,
)


def test_envelope_shape():
    error = InvalidTransitionError(
        "pending", "delivered", ErrorContext(order_id="o-1", actor_role="admin"),
    )
    body = error.to_response()["error"]
    assert body["code"] == "INVALID_TRANSITION"
    assert body["category"] == "state"
    assert body["details"] == {"current_status": "pending", "requested_status": "delivered"}
    assert body["context"] == {"order_id": "o-1", "actor_role": "admin"}
    assert error.http_status == 409


def test_terminal_state_is_a_state_error():
    error = TerminalStateError("delivered", "cancelled")
    assert isinstance(error, StateError)
    assert error.code == "TERMINAL_STATE"
    assert "delivered" in error.message


def test_rebuild_keeps_type_and_message():
    original = TerminalStateError("cancelled", "confirmed")
    rebuilt = error_from_response(409, original.to_response())
    assert isinstance(rebuilt, TerminalStateError)
    assert rebuilt.message == original.message
    assert rebuilt.current_status == "cancelled"


def test_rebuild_custom_state_code():
    original = StateError("needs override", "out_for_delivery", "cancelled", "OVERRIDE_REQUIRED")
    rebuilt = error_from_response(409, original.to_response())
    assert type(rebuilt) is StateError
    assert rebuilt.code == "OVERRIDE_REQUIRED"


def test_rebuild_capacity_and_cod():
    capacity = error_from_response(409, CapacityError("tomato", 11, 10).to_response())
    assert isinstance(capacity, CapacityError)
    assert (capacity.requested, capacity.available) == (11, 10)

    cod = error_from_response(403, CodNotEligibleError(4, 5).to_response())
    assert isinstance(cod, CodNotEligibleError)
    assert cod.orders_needed == 1


def test_rebuild_promo_and_validation():
    promo = error_from_response(400, PromoMinimumNotMetError("FRESH20", 1000.0, 800.0).to_response())
    assert isinstance(promo, PromoMinimumNotMetError)
    assert promo.min_order == 1000.0

    plain = error_from_response(400, ValidationError("Recipient name is required.", "recipient_name").to_response())
    assert plain.field == "recipient_name"


def test_rebuild_by_status_fallbacks():
    assert isinstance(error_from_response(401, {"error": {"code": "X"}}), AuthenticationError)
    assert isinstance(
        error_from_response(404, ResourceNotFoundError("Order", "abc").to_response()),
        ResourceNotFoundError,
    )


def test_list_details_tolerated():
    payload = {"error": {"code": "VALIDATION_ERROR", "message": "bad", "details": ["x"]}}
    error = error_from_response(400, payload)
    assert isinstance(error, ValidationError)
    assert error.message == "bad"


def test_non_envelope_payload_is_network_error():
    assert isinstance(error_from_response(502, "<html>Bad gateway</html>"), NetworkError)
    assert isinstance(error_from_response(500, {"detail": "boom"}), NetworkError)
