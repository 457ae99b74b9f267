"""create decisions table

Revision ID: 5b1e2c7d9a40
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from __future__ import annotations

from typing import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "5b1e2c7d9a40"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    # Identifiers are unsigned 64-bit values stored offset by 2**63 in BIGINT.
    op.create_table(
        "decisions",
        sa.Column("actor_id", sa.BigInteger(), nullable=False),
        sa.Column("recipient_id", sa.BigInteger(), nullable=False),
        sa.Column("liked", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("actor_id", "recipient_id"),
    )
    op.create_index(
        "ix_decisions_recipient_liked_updated_actor",
        "decisions",
        [
            "recipient_id",
            "liked",
            sa.text("updated_at DESC"),
            sa.text("actor_id DESC"),
        ],
    )
    op.create_index(
        "ix_decisions_actor_recipient_liked",
        "decisions",
        ["actor_id", "recipient_id", "liked"],
    )


def downgrade() -> None:
    op.drop_index("ix_decisions_actor_recipient_liked", table_name="decisions")
    op.drop_index("ix_decisions_recipient_liked_updated_actor", table_name="decisions")
    op.drop_table("decisions")
