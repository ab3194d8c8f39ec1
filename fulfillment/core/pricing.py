"""Pricing & Shipping — subtotal, promo discount, shipping fee and grand total.

Invariants:
    - Exactly one free-shipping threshold (ShippingPolicy.free_threshold)
    - A promo applies only when subtotal >= min_order; discount = subtotal × rate
    - Unknown and under-minimum promo codes raise distinct ValidationErrors
    - total = subtotal + shipping − discount, floored at 0
    - All money rounded to 2 decimal places

Design Decisions:
    - Pure functions over a stateful calculator: the backend re-prices every
      order with the same code the client used for its preview
    - Promo lookup is case-insensitive and whitespace-tolerant
"""

from dataclasses import dataclass

from fulfillment.core.domain_types import FLAT_SHIPPING_FEE, FREE_SHIPPING_THRESHOLD
from fulfillment.core.errors import (
    PromoMinimumNotMetError, UnknownPromoCodeError, ValidationError,
)


@dataclass(frozen=True)
class ShippingPolicy:
    free_threshold: float = FREE_SHIPPING_THRESHOLD
    flat_fee: float = FLAT_SHIPPING_FEE


@dataclass(frozen=True)
class PromoCode:
    code: str
    discount_rate: float
    min_order: float
    description: str = ""


PROMO_CODES: dict[str, PromoCode] = {
    "WELCOME10": PromoCode("WELCOME10", 0.10, 500.0, "10% off orders over ₱500"),
    "FRESH20": PromoCode("FRESH20", 0.20, 1000.0, "20% off orders over ₱1000"),
    "ORGANIC15": PromoCode("ORGANIC15", 0.15, 750.0, "15% off orders over ₱750"),
}


@dataclass(frozen=True)
class AppliedPromo:
    code: str
    discount: float


@dataclass(frozen=True)
class PriceSummary:
    subtotal: float
    shipping_fee: float
    discount: float
    total: float
    promo_code: str | None
    free_shipping_threshold: float
    amount_for_free_shipping: float


def normalize_promo_code(code: str) -> str:
    return code.strip().upper()


def shipping_fee(subtotal: float, policy: ShippingPolicy = ShippingPolicy()) -> float:
    """0 once subtotal reaches the threshold, else the flat fee."""
    if subtotal >= policy.free_threshold:
        return 0.0
    return round(policy.flat_fee, 2)


def apply_promo(
    code: str,
    subtotal: float,
    promo_codes: dict[str, PromoCode] = PROMO_CODES,
) -> AppliedPromo:
    """Validate a promo code against the subtotal and compute its discount."""
    normalized = normalize_promo_code(code)
    if not normalized:
        raise ValidationError("Enter a promo code.", "promo_code")
    promo = promo_codes.get(normalized)
    if promo is None:
        raise UnknownPromoCodeError(normalized)
    if subtotal < promo.min_order:
        raise PromoMinimumNotMetError(normalized, promo.min_order, subtotal)
    return AppliedPromo(code=normalized, discount=round(subtotal * promo.discount_rate, 2))


def grand_total(subtotal: float, shipping: float, discount: float) -> float:
    return max(0.0, round(subtotal + shipping - discount, 2))


def price_cart(
    subtotal: float,
    policy: ShippingPolicy = ShippingPolicy(),
    promo_code: str | None = None,
    promo_codes: dict[str, PromoCode] = PROMO_CODES,
) -> PriceSummary:
    """Full price breakdown. Re-validates the promo against the current subtotal."""
    if subtotal < 0:
        raise ValidationError("Subtotal cannot be negative.", "subtotal")

    applied = apply_promo(promo_code, subtotal, promo_codes) if promo_code else None
    discount = applied.discount if applied else 0.0
    shipping = shipping_fee(subtotal, policy)
    return PriceSummary(
        subtotal=round(subtotal, 2),
        shipping_fee=shipping,
        discount=discount,
        total=grand_total(subtotal, shipping, discount),
        promo_code=applied.code if applied else None,
        free_shipping_threshold=policy.free_threshold,
        amount_for_free_shipping=max(0.0, round(policy.free_threshold - subtotal, 2)),
    )
