"""User ORM — customers, admins and drivers behind a bearer credential.

Invariants:
    - role is one of customer | admin | driver (SYSTEM never has a row)
    - api_token is unique; the API resolves every request to exactly one row
    - successful_gcash_orders only moves up, inside the transaction that
      delivers a GCash order

Design Decisions:
    - Payment history denormalized onto the user row: the COD gate reads one integer
    - is_available only matters for drivers and is never read by order transitions
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from fulfillment.db.base import Base


class User(Base):
    """Account entity — one per customer, admin or driver."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="customer",
    )
    api_token: Mapped[str] = mapped_column(
        String(128), nullable=False, unique=True, index=True,
    )
    successful_gcash_orders: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    is_available: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
