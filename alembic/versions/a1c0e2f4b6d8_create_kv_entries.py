"""Create kv_entries table backing the durable store.

Revision ID: a1c0e2f4b6d8
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from src.constants import DB_SCHEMA

revision = "a1c0e2f4b6d8"
down_revision = None


def upgrade() -> None:
    op.execute(f"CREATE SCHEMA IF NOT EXISTS {DB_SCHEMA}")
    op.create_table(
        "kv_entries",
        sa.Column("key", sa.Text(), primary_key=True),
        sa.Column("value", JSONB(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        schema=DB_SCHEMA,
    )


def downgrade() -> None:
    op.drop_table("kv_entries", schema=DB_SCHEMA)
