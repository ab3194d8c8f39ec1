"""Declarative Base — metadata shared by users, orders and order status events.

Alembic autogenerate and the test fixtures both read Base.metadata, so every
model must subclass this Base and be imported by fulfillment.models.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
