"""initial schema

Revision ID: 5c1e0a7d2b41
Revises:
Create Date: 2025-11-03 09:12:40.514203

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e0a7d2b41"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _reaction_counts() -> list[sa.Column]:
    kinds = ("funny", "rage", "shock", "relatable", "love", "thinking")
    columns = [
        sa.Column(f"{kind}_count", sa.Integer(), nullable=False, server_default="0")
        for kind in kinds
    ]
    columns.append(sa.Column("reaction_total", sa.Integer(), nullable=False, server_default="0"))
    return columns


def _user_fk(name: str, primary_key: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.Integer(),
        sa.ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        primary_key=primary_key,
    )


def upgrade() -> None:
    """Create the full schema."""
    op.create_table(
        "user_account",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(length=30), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=True),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column("bio", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("preferences", sa.JSON(), nullable=False),
        sa.Column("karma_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("posts_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("followers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("following_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_post_date", sa.Date(), nullable=True),
        sa.Column("notify_reactions", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notify_comments", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notify_followers", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notify_messages", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "follow",
        _user_fk("follower_id", primary_key=True),
        _user_fk("followee_id", primary_key=True),
        _ts("created_at"),
    )
    op.create_index("ix_follow_followee_id", "follow", ["followee_id"])

    op.create_table(
        "post",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("author_id"),
        sa.Column("text", sa.Text(), nullable=False, server_default=""),
        sa.Column("media", sa.JSON(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("visibility", sa.String(length=16), nullable=False, server_default="normal"),
        sa.Column("disguise_avatar", sa.Text(), nullable=True),
        sa.Column("vanish_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("vanish_duration", sa.String(length=8), nullable=True),
        _ts("vanish_at", nullable=True),
        *_reaction_counts(),
        sa.Column("comment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("trending_score", sa.Float(), nullable=False, server_default="0"),
        _ts("trending_calculated_at", nullable=True),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_post_author_created", "post", ["author_id", "created_at"])
    op.create_index("ix_post_category_created", "post", ["category", "created_at"])
    op.create_index("ix_post_trending_score", "post", ["trending_score"])
    op.create_index("ix_post_vanish_at", "post", ["vanish_at"])

    op.create_table(
        "comment",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "post_id",
            sa.Integer(),
            sa.ForeignKey("post.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk("author_id"),
        sa.Column("content", sa.String(length=500), nullable=False),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
    )
    op.create_index("ix_comment_post_id", "comment", ["post_id"])

    op.create_table(
        "post_reaction",
        sa.Column(
            "post_id",
            sa.Integer(),
            sa.ForeignKey("post.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _user_fk("user_id", primary_key=True),
        sa.Column("reaction_type", sa.String(length=16), nullable=False),
        _ts("created_at"),
    )
    op.create_index("ix_post_reaction_user_id", "post_reaction", ["user_id"])

    op.create_table(
        "comment_reaction",
        sa.Column(
            "comment_id",
            sa.Integer(),
            sa.ForeignKey("comment.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _user_fk("user_id", primary_key=True),
        sa.Column("reaction_type", sa.String(length=16), nullable=False),
        _ts("created_at"),
    )

    op.create_table(
        "whisper_post",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("random_username", sa.String(length=40), nullable=False),
        sa.Column("text", sa.Text(), nullable=False, server_default=""),
        sa.Column("media", sa.JSON(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        *_reaction_counts(),
        sa.Column("comment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("trending_score", sa.Float(), nullable=False, server_default="0"),
        _ts("trending_calculated_at", nullable=True),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("expires_at"),
        sa.Column("is_chain_message", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("chain_id", sa.String(length=32), nullable=True),
        sa.Column("original_message", sa.Text(), nullable=True),
        sa.Column("hop_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("confession_room_id", sa.String(length=64), nullable=True),
        sa.Column("confession_theme", sa.String(length=64), nullable=True),
        _ts("created_at"),
    )
    op.create_index("ix_whisper_post_category", "whisper_post", ["category"])
    op.create_index("ix_whisper_post_expires_at", "whisper_post", ["expires_at"])
    op.create_index("ix_whisper_post_chain_id", "whisper_post", ["chain_id"])
    op.create_index("ix_whisper_post_confession_room_id", "whisper_post", ["confession_room_id"])

    op.create_table(
        "whisper_reaction",
        sa.Column(
            "whisper_id",
            sa.Integer(),
            sa.ForeignKey("whisper_post.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("session_id", sa.String(length=64), primary_key=True),
        sa.Column("reaction_type", sa.String(length=16), nullable=False),
        _ts("created_at"),
    )
    op.create_table(
        "whisper_comment",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "whisper_id",
            sa.Integer(),
            sa.ForeignKey("whisper_post.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("random_username", sa.String(length=40), nullable=False),
        sa.Column("content", sa.String(length=500), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        _ts("created_at"),
    )
    op.create_index("ix_whisper_comment_whisper_id", "whisper_comment", ["whisper_id"])

    op.create_table(
        "conversation",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("user_low_id"),
        _user_fk("user_high_id"),
        _ts("last_message_at"),
        _ts("created_at"),
        sa.UniqueConstraint("user_low_id", "user_high_id", name="uq_conversation_pair"),
        sa.CheckConstraint("user_low_id < user_high_id", name="ck_conversation_pair_order"),
    )
    op.create_index("ix_conversation_high", "conversation", ["user_high_id"])

    op.create_table(
        "chat_message",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "conversation_id",
            sa.Integer(),
            sa.ForeignKey("conversation.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk("sender_id"),
        sa.Column("text", sa.String(length=5000), nullable=False, server_default=""),
        sa.Column("media", sa.JSON(), nullable=False),
        _ts("created_at"),
        _ts("edited_at", nullable=True),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("deleted_at", nullable=True),
    )
    op.create_index("ix_chat_message_conversation_id", "chat_message", ["conversation_id", "id"])

    op.create_table(
        "message_read",
        sa.Column(
            "message_id",
            sa.Integer(),
            sa.ForeignKey("chat_message.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _user_fk("user_id", primary_key=True),
        _ts("read_at"),
    )
    op.create_table(
        "message_reaction",
        sa.Column(
            "message_id",
            sa.Integer(),
            sa.ForeignKey("chat_message.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _user_fk("user_id", primary_key=True),
        sa.Column("reaction_type", sa.String(length=16), nullable=False),
        _ts("created_at"),
    )

    op.create_table(
        "notification",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("user_id"),
        _user_fk("actor_id"),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=True),
        sa.Column("comment_id", sa.Integer(), nullable=True),
        sa.Column("message_id", sa.Integer(), nullable=True),
        sa.Column("reaction_type", sa.String(length=16), nullable=True),
        sa.Column("excerpt", sa.String(length=140), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
    )
    op.create_index("ix_notification_user_created", "notification", ["user_id", "created_at"])


def downgrade() -> None:
    """Drop every table in reverse dependency order."""
    for table in (
        "notification",
        "message_reaction",
        "message_read",
        "chat_message",
        "conversation",
        "whisper_comment",
        "whisper_reaction",
        "whisper_post",
        "comment_reaction",
        "post_reaction",
        "comment",
        "post",
        "follow",
        "user_account",
    ):
        op.drop_table(table)
