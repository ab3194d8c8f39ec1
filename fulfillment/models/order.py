"""Order ORM — persists the order aggregate, its proof of delivery and status.

Invariants:
    - id is UUID primary key; order_number is unique
    - items is the frozen snapshot written once at creation
    - status, proof_of_delivery and the matching OrderStatusEvent row are
      written in one commit
    - version increments on every UPDATE; a write against a stale version
      raises StaleDataError (mapped to ConcurrencyError)

Design Decisions:
    - JSON columns for items, proof and feedback: read and written whole, never queried by field
    - SQLAlchemy version_id_col over SELECT ... FOR UPDATE: works on SQLite in
      tests and on PostgreSQL in production
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    String, Text, Float, Integer, Date, DateTime, JSON, ForeignKey,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from fulfillment.db.base import Base


class Order(Base):
    """Order aggregate root — owns its status history."""
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    order_number: Mapped[str] = mapped_column(
        String(20), nullable=False, unique=True,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Pricing (frozen at creation)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False)
    shipping_fee: Mapped[float] = mapped_column(Float, nullable=False)
    discount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total: Mapped[float] = mapped_column(Float, nullable=False)
    promo_code: Mapped[str | None] = mapped_column(String(40), nullable=True)
    payment_method: Mapped[str] = mapped_column(String(10), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True,
    )
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False)
    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    delivery_window: Mapped[str | None] = mapped_column(String(40), nullable=True)

    # Fulfillment
    driver_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True,
    )
    assigned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    delivery_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    delivered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    proof_of_delivery: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    feedback: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    events: Mapped[list["OrderStatusEvent"]] = relationship(
        "OrderStatusEvent", back_populates="order",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="OrderStatusEvent.position",
    )
