"""Cache entry key-value table

Revision ID: 20261017_01
Revises: None
Create Date: 2026-10-17
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261017_01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "cache_entry",
        sa.Column("cache_key", sa.Text(), primary_key=True),
        sa.Column("cache_value", sa.Text(), nullable=False),
        sa.Column("updated_at_utc", sa.Text(), nullable=False),
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_table("cache_entry")
