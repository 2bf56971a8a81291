"""initial schema: users, photos, swipes, messages

Revision ID: 3f1a7c2d9e10
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1a7c2d9e10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

gender = sa.Enum("male", "female", "other", name="gender")
looking_for = sa.Enum("male", "female", "both", name="lookingfor")
swipe_action = sa.Enum("like", "pass", "superlike", name="swipeaction")
message_type = sa.Enum("text", "image", "sticker", "gif", name="messagetype")


def upgrade() -> None:
    """Create user, user_photo, swipe and message tables."""
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("telegram_id", sa.BigInteger(), nullable=False),
        sa.Column("username", sa.String(), nullable=True),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("gender", gender, nullable=True),
        sa.Column("looking_for", looking_for, nullable=True),
        sa.Column("bio", sa.String(), nullable=True),
        sa.Column("interests", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("last_seen", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("telegram_id", name="uq_user_telegram_id"),
    )
    op.create_index("ix_user_telegram_id", "user", ["telegram_id"], unique=False)
    op.create_index(
        "ix_user_active_last_seen",
        "user",
        ["is_active", "last_seen"],
        unique=False,
    )

    op.create_table(
        "user_photo",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("is_main", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_photo_user_id", "user_photo", ["user_id"], unique=False)

    op.create_table(
        "swipe",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column("action", swipe_action, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["user.id"]),
        sa.ForeignKeyConstraint(["target_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("actor_id", "target_id", name="uq_swipe_actor_target"),
    )
    op.create_index("ix_swipe_actor_id", "swipe", ["actor_id"], unique=False)
    op.create_index("ix_swipe_target_id", "swipe", ["target_id"], unique=False)
    op.create_index("ix_swipe_created_at", "swipe", ["created_at"], unique=False)
    op.create_index(
        "ix_swipe_target_action",
        "swipe",
        ["target_id", "action"],
        unique=False,
    )

    op.create_table(
        "message",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("receiver_id", sa.Integer(), nullable=False),
        sa.Column("content", sa.String(), nullable=False),
        sa.Column("type", message_type, server_default="text", nullable=False),
        sa.Column("media_url", sa.String(), nullable=True),
        sa.Column("reply_to_id", sa.Integer(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["sender_id"], ["user.id"]),
        sa.ForeignKeyConstraint(["receiver_id"], ["user.id"]),
        sa.ForeignKeyConstraint(["reply_to_id"], ["message.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_message_sender_id", "message", ["sender_id"], unique=False)
    op.create_index("ix_message_receiver_id", "message", ["receiver_id"], unique=False)
    op.create_index(
        "ix_message_sender_receiver_created_at",
        "message",
        ["sender_id", "receiver_id", sa.text("created_at DESC")],
        unique=False,
    )
    op.create_index(
        "ix_message_receiver_is_read",
        "message",
        ["receiver_id", "is_read"],
        unique=False,
    )


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_index("ix_message_receiver_is_read", table_name="message")
    op.drop_index("ix_message_sender_receiver_created_at", table_name="message")
    op.drop_index("ix_message_receiver_id", table_name="message")
    op.drop_index("ix_message_sender_id", table_name="message")
    op.drop_table("message")

    op.drop_index("ix_swipe_target_action", table_name="swipe")
    op.drop_index("ix_swipe_created_at", table_name="swipe")
    op.drop_index("ix_swipe_target_id", table_name="swipe")
    op.drop_index("ix_swipe_actor_id", table_name="swipe")
    op.drop_table("swipe")

    op.drop_index("ix_user_photo_user_id", table_name="user_photo")
    op.drop_table("user_photo")

    op.drop_index("ix_user_active_last_seen", table_name="user")
    op.drop_index("ix_user_telegram_id", table_name="user")
    op.drop_table("user")

    bind = op.get_bind()
    for enum_type in (message_type, swipe_action, looking_for, gender):
        enum_type.drop(bind, checkfirst=True)
