"""ORM Models — SQLAlchemy declarative models for the authoritative order store.

Invariants:
    - All models inherit from Base (db/base.py)
    - Order is the aggregate root; status events are scoped by order_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from fulfillment.models.user import User  # noqa: F401
from fulfillment.models.order import Order  # noqa: F401
from fulfillment.models.order_status_event import OrderStatusEvent  # noqa: F401
