"""Order feedback — customer rating stored on the order row.

Revision ID: 002_order_feedback
Revises: 001_initial
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002_order_feedback"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("orders", sa.Column("feedback", sa.JSON, nullable=True))


def downgrade() -> None:
    op.drop_column("orders", "feedback")
