"""COD Eligibility Gate — derives COD availability from prepaid order history.

Invariants:
    - eligible == successful_gcash_orders >= required_orders
    - orders_needed == max(0, required_orders − successful_gcash_orders)
    - COD is always listed among payment options; it is disabled, never hidden,
      while the customer is ineligible
    - check_payment_method is the only gate: callers never re-implement the comparison

Design Decisions:
    - Eligibility is a value computed from a freshly fetched count, never a cached
      boolean (the count only moves up, so a stale value can only under-report)
"""

from dataclasses import dataclass

from fulfillment.core.domain_types import PaymentMethod, REQUIRED_GCASH_ORDERS_FOR_COD
from fulfillment.core.errors import CodNotEligibleError


@dataclass(frozen=True)
class CodEligibility:
    successful_gcash_orders: int
    required_orders: int = REQUIRED_GCASH_ORDERS_FOR_COD

    @property
    def eligible(self) -> bool:
        return self.successful_gcash_orders >= self.required_orders

    @property
    def orders_needed(self) -> int:
        return max(0, self.required_orders - self.successful_gcash_orders)

    @property
    def message(self) -> str:
        if self.eligible:
            return "Pay in cash when your order arrives"
        noun = "order" if self.orders_needed == 1 else "orders"
        return f"{self.orders_needed} more {noun} needed"


@dataclass(frozen=True)
class PaymentOption:
    method: PaymentMethod
    name: str
    description: str
    available: bool


def payment_options(eligibility: CodEligibility) -> list[PaymentOption]:
    """Checkout payment options; COD present-but-disabled until unlocked."""
    return [
        PaymentOption(
            PaymentMethod.GCASH, "GCash",
            "Pay securely with your GCash wallet", True,
        ),
        PaymentOption(
            PaymentMethod.COD, "Cash on Delivery",
            eligibility.message, eligibility.eligible,
        ),
    ]


def check_payment_method(method: PaymentMethod, eligibility: CodEligibility) -> None:
    """Raise CodNotEligibleError when COD is chosen by an ineligible customer."""
    if method == PaymentMethod.COD and not eligibility.eligible:
        raise CodNotEligibleError(
            eligibility.successful_gcash_orders, eligibility.required_orders,
        )


def eligibility_to_dict(eligibility: CodEligibility) -> dict:
    return {
        "successful_gcash_orders": eligibility.successful_gcash_orders,
        "required_orders": eligibility.required_orders,
        "eligible": eligibility.eligible,
        "orders_needed": eligibility.orders_needed,
    }


def eligibility_from_dict(data: dict) -> CodEligibility:
    return CodEligibility(
        successful_gcash_orders=int(data.get("successful_gcash_orders", 0)),
        required_orders=int(data.get("required_orders", REQUIRED_GCASH_ORDERS_FOR_COD)),
    )
