"""comment replies, hidden posts, discovery opt-out

Revision ID: 9d4b7e2c1a63
Revises: 5c1e0a7d2b41
Create Date: 2025-11-17 14:26:05.188341

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "9d4b7e2c1a63"
down_revision: Union[str, Sequence[str], None] = "5c1e0a7d2b41"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add reply threading, per-user hidden posts and anonymous notification actors."""
    with op.batch_alter_table("comment") as batch_op:
        batch_op.add_column(sa.Column("parent_id", sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            "fk_comment_parent_id_comment",
            "comment",
            ["parent_id"],
            ["id"],
            ondelete="CASCADE",
        )
        batch_op.create_index("ix_comment_parent_id", ["parent_id"])

    op.create_table(
        "hidden_post",
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("user_account.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "post_id",
            sa.Integer(),
            sa.ForeignKey("post.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    with op.batch_alter_table("user_account") as batch_op:
        batch_op.add_column(
            sa.Column("allow_discovery", sa.Boolean(), nullable=False, server_default=sa.true())
        )

    with op.batch_alter_table("notification") as batch_op:
        batch_op.alter_column("actor_id", existing_type=sa.Integer(), nullable=True)


def downgrade() -> None:
    """Revert to the initial schema, dropping anonymous notifications first."""
    op.execute("DELETE FROM notification WHERE actor_id IS NULL")
    with op.batch_alter_table("notification") as batch_op:
        batch_op.alter_column("actor_id", existing_type=sa.Integer(), nullable=False)

    with op.batch_alter_table("user_account") as batch_op:
        batch_op.drop_column("allow_discovery")

    op.drop_table("hidden_post")

    op.execute("DELETE FROM comment WHERE parent_id IS NOT NULL")
    with op.batch_alter_table("comment") as batch_op:
        batch_op.drop_index("ix_comment_parent_id")
        batch_op.drop_constraint("fk_comment_parent_id_comment", type_="foreignkey")
        batch_op.drop_column("parent_id")
