"""Error Hierarchy — typed, categorized exceptions for all fulfillment failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Cart and pricing errors are raised before any mutation is applied
    - StateError always names the current and the requested status
    - to_response() produces the REST envelope; error_from_response() rebuilds it client-side
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with FulfillmentError base: FastAPI global handler catches all
      (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - `details` carries machine-readable fields so the client can rebuild the exact
      subclass from the wire envelope
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    CAPACITY = "capacity"
    STATE = "state"
    AUTHORIZATION = "authorization"
    AUTHENTICATION = "authentication"
    RESOURCE_NOT_FOUND = "resource_not_found"
    NETWORK = "network"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    order_id: str | None = None
    actor_role: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class FulfillmentError(Exception):
    """Base exception for all fulfillment errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.details = details or {}

    @property
    def recoverable(self) -> bool:
        return self.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING, ErrorSeverity.ERROR)

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "details": self.details,
                "context": {
                    "order_id": self.context.order_id,
                    "actor_role": self.context.actor_role,
                },
            }
        }


# ─── Validation (400) ───────────────────────────────────────────

class ValidationError(FulfillmentError):
    """Input rejected before any state was touched."""
    def __init__(
        self,
        message: str,
        field: str | None = None,
        code: str = "VALIDATION_ERROR",
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
            {"field": field, **(details or {})},
        )
        self.field = field


class UnknownPromoCodeError(ValidationError):
    """Promo code is not in the promo table."""
    def __init__(self, promo_code: str, context: ErrorContext | None = None):
        super().__init__(
            f"Promo code '{promo_code}' is not valid.",
            "promo_code", "PROMO_UNKNOWN", context,
            {"promo_code": promo_code},
        )
        self.promo_code = promo_code


class PromoMinimumNotMetError(ValidationError):
    """Subtotal is below the promo's minimum order."""
    def __init__(
        self, promo_code: str, min_order: float, subtotal: float,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Minimum order of ₱{min_order:,.2f} required for promo '{promo_code}' "
            f"(add ₱{max(0.0, min_order - subtotal):,.2f} more).",
            "promo_code", "PROMO_MINIMUM_NOT_MET", context,
            {"promo_code": promo_code, "min_order": min_order, "subtotal": subtotal},
        )
        self.promo_code = promo_code
        self.min_order = min_order
        self.subtotal = subtotal


class EmptyCartError(ValidationError):
    """Checkout attempted with nothing in the cart."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__("Your cart is empty.", "items", "EMPTY_CART", context)


# ─── Capacity (409) ─────────────────────────────────────────────

class CapacityError(FulfillmentError):
    """Requested quantity exceeds available stock."""
    def __init__(
        self, product_id: str, requested: int, available: int,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Sorry, only {available} item(s) available in stock "
            f"(requested {requested}).",
            "CAPACITY_EXCEEDED", ErrorCategory.CAPACITY,
            ErrorSeverity.WARNING, context, 409,
            {"product_id": product_id, "requested": requested, "available": available},
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


# ─── State machine (409) ────────────────────────────────────────

class StateError(FulfillmentError):
    """Order is not in a state that permits the requested change."""
    def __init__(
        self,
        message: str,
        current_status: str | None,
        requested_status: str | None,
        code: str = "STATE_ERROR",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.STATE,
            ErrorSeverity.ERROR, context, 409,
            {"current_status": current_status, "requested_status": requested_status},
        )
        self.current_status = current_status
        self.requested_status = requested_status


class InvalidTransitionError(StateError):
    """Requested status is not adjacent to the current one."""
    def __init__(
        self, current_status: str, requested_status: str,
        context: ErrorContext | None = None, code: str = "INVALID_TRANSITION",
    ):
        super().__init__(
            f"Cannot change status from {current_status} to {requested_status}",
            current_status, requested_status, code, context,
        )


class TerminalStateError(InvalidTransitionError):
    """Order already reached delivered, failed or cancelled."""
    def __init__(
        self, current_status: str, requested_status: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(current_status, requested_status, context, "TERMINAL_STATE")
        self.message = (
            f"Order is already {current_status}; cannot change status to {requested_status}"
        )
        self.args = (self.message,)


class ConcurrencyError(StateError):
    """Another actor changed the order first. Re-fetch and retry manually."""
    def __init__(
        self,
        message: str,
        current_status: str | None = None,
        requested_status: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, current_status, requested_status,
            "CONCURRENCY_CONFLICT", context,
        )


# ─── Authorization (401/403) ────────────────────────────────────

class AuthorizationError(FulfillmentError):
    """Actor role is not permitted to perform the action."""
    def __init__(
        self,
        message: str,
        role: str | None = None,
        code: str = "AUTHORIZATION_ERROR",
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context, 403,
            {"role": role, **(details or {})},
        )
        self.role = role


class CodNotEligibleError(AuthorizationError):
    """Customer has not completed enough prepaid orders to unlock COD."""
    def __init__(
        self, successful_gcash_orders: int, required_orders: int,
        context: ErrorContext | None = None,
    ):
        needed = max(0, required_orders - successful_gcash_orders)
        super().__init__(
            f"Cash on Delivery is locked: {needed} more "
            f"{'order' if needed == 1 else 'orders'} needed.",
            "customer", "COD_NOT_ELIGIBLE", context,
            {
                "successful_gcash_orders": successful_gcash_orders,
                "required_orders": required_orders,
                "orders_needed": needed,
            },
        )
        self.successful_gcash_orders = successful_gcash_orders
        self.required_orders = required_orders
        self.orders_needed = needed


class AuthenticationError(FulfillmentError):
    """Missing or unknown bearer credential."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authentication required", "AUTHENTICATION_ERROR",
            ErrorCategory.AUTHENTICATION, ErrorSeverity.ERROR, context, 401,
        )


# ─── Lookup (404) ───────────────────────────────────────────────

class ResourceNotFoundError(FulfillmentError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
            {"resource_type": resource_type, "resource_id": resource_id},
        )


# ─── Infrastructure (503) ───────────────────────────────────────

class NetworkError(FulfillmentError):
    """Request to the backend failed; no state change was applied."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Request failed during {operation}: {message}",
            "NETWORK_ERROR", ErrorCategory.NETWORK,
            ErrorSeverity.ERROR, context, 503,
            {"operation": operation},
        )
        self.operation = operation


class DatabaseError(FulfillmentError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class StorageError(FulfillmentError):
    """Local cart blob could not be written; the previous cart stays current."""
    def __init__(self, message: str, key: str, context: ErrorContext | None = None):
        super().__init__(
            f"Could not save cart: {message}",
            "STORAGE_ERROR", ErrorCategory.INTERNAL,
            ErrorSeverity.ERROR, context, 500,
            {"key": key},
        )
        self.key = key


# ─── Wire envelope → typed error ────────────────────────────────

def error_from_response(http_status: int, payload: Any) -> FulfillmentError:
    """Rebuild a typed error from a backend error envelope. Pure, no IO.

    The backend message is kept verbatim so the client shows exactly what
    the authoritative side rejected.
    """
    body = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(body, dict):
        return NetworkError(f"unexpected HTTP {http_status} response", "response")

    code = body.get("code", "")
    message = body.get("message", "")
    d = body.get("details")
    if not isinstance(d, dict):
        d = {}

    error: FulfillmentError
    if code == "TERMINAL_STATE":
        error = TerminalStateError(d.get("current_status"), d.get("requested_status"))
    elif code == "INVALID_TRANSITION":
        error = InvalidTransitionError(d.get("current_status"), d.get("requested_status"))
    elif code == "CONCURRENCY_CONFLICT":
        error = ConcurrencyError(message, d.get("current_status"), d.get("requested_status"))
    elif code == "STATE_ERROR":
        error = StateError(message, d.get("current_status"), d.get("requested_status"))
    elif code == "CAPACITY_EXCEEDED":
        error = CapacityError(
            d.get("product_id", ""), d.get("requested", 0), d.get("available", 0),
        )
    elif code == "COD_NOT_ELIGIBLE":
        error = CodNotEligibleError(
            d.get("successful_gcash_orders", 0), d.get("required_orders", 0),
        )
    elif code == "PROMO_UNKNOWN":
        error = UnknownPromoCodeError(d.get("promo_code", ""))
    elif code == "PROMO_MINIMUM_NOT_MET":
        error = PromoMinimumNotMetError(
            d.get("promo_code", ""), d.get("min_order", 0.0), d.get("subtotal", 0.0),
        )
    elif code == "AUTHENTICATION_ERROR" or http_status == 401:
        error = AuthenticationError()
    elif http_status == 403:
        error = AuthorizationError(message, d.get("role"), code or "AUTHORIZATION_ERROR")
    elif http_status == 409:
        error = StateError(
            message, d.get("current_status"), d.get("requested_status"),
            code or "STATE_ERROR",
        )
    elif http_status == 404:
        error = ResourceNotFoundError(
            d.get("resource_type", "Resource"), d.get("resource_id", ""),
        )
    elif http_status in (400, 422):
        error = ValidationError(message, d.get("field"), code or "VALIDATION_ERROR")
    else:
        error = NetworkError(message or f"HTTP {http_status}", "response")

    if message:
        error.message = message
        error.args = (message,)
    return error
