"""Root conftest — shared test configuration and order factory."""

import os
from datetime import datetime, timezone
from uuid import uuid4

import pytest

# Ensure tests never reach a real database
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)

from fulfillment.core.domain_types import (  # noqa: E402
    ActorId, OrderId, OrderStatus, PaymentMethod, ProductId,
)
from fulfillment.core.order import Order, OrderItem  # noqa: E402

NOW = datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_order():
    """Factory for domain Orders: make_order(status=..., **field_overrides)."""
    def _make(status: OrderStatus = OrderStatus.PENDING, **overrides) -> Order:
        fields = dict(
            id=OrderId(uuid4()),
            order_number="CV20261017AB12",
            customer_id=ActorId(uuid4()),
            customer_name="Maria Santos",
            items=(OrderItem(ProductId("tomato"), "Tomatoes", 85.0, 2, 170.0),),
            subtotal=170.0,
            shipping_fee=50.0,
            discount=0.0,
            total=220.0,
            payment_method=PaymentMethod.GCASH,
            delivery_address="12 Mabini St, Quezon City",
            created_at=NOW,
            updated_at=NOW,
            status=status,
        )
        fields.update(overrides)
        return Order(**fields)
    return _make
