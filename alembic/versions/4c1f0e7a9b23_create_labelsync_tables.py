"""Create post_labels, active_associations and checkpoints tables

Revision ID: 4c1f0e7a9b23
Revises:
Create Date: 2026-10-19 10:12:31.482903

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '4c1f0e7a9b23'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the label cache, the association ledger and the cursor history."""

    # --- post_labels ---
    op.create_table(
        "post_labels",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("post_id", sa.String(255), nullable=False),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("is_meta", sa.Boolean, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("post_id", name="uq_post_labels_post_id"),
    )
    op.create_index("ix_post_labels_label", "post_labels", ["label"])

    # --- active_associations ---
    op.create_table(
        "active_associations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("account", sa.String(255), nullable=False),
        sa.Column("like_path", sa.String(255), nullable=False),
        sa.Column("target_post_uri", sa.String(512), nullable=False),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("account", "like_path", name="uq_active_assoc_account_like"),
    )
    op.create_index(
        "ix_active_assoc_account_label", "active_associations", ["account", "label"],
    )

    # --- checkpoints ---
    op.create_table(
        "checkpoints",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("cursor", sa.String(255), nullable=False),
        sa.Column("observed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_checkpoints_observed_at", "checkpoints", ["observed_at"])


def downgrade() -> None:
    op.drop_index("ix_checkpoints_observed_at", table_name="checkpoints")
    op.drop_table("checkpoints")
    op.drop_index("ix_active_assoc_account_label", table_name="active_associations")
    op.drop_table("active_associations")
    op.drop_index("ix_post_labels_label", table_name="post_labels")
    op.drop_table("post_labels")
