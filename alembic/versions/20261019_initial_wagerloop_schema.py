"""initial wagerloop schema: users, posts, communities, follows, notifications

Revision ID: 20261019_initial_wagerloop_schema
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_initial_wagerloop_schema"
down_revision = None
branch_labels = None
depends_on = None

UUID = postgresql.UUID(as_uuid=True)


def _user_fk(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, **kwargs)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("display_name", sa.String(length=150), nullable=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("bio", sa.String(length=500), nullable=True),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        _created_at(),
        sa.Column("last_active_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_username", "users", ["username"])

    op.create_table(
        "follows",
        sa.Column("follower_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("following_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        _created_at(),
    )

    op.create_table(
        "posts",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        _user_fk("user_id"),
        sa.Column("kind", sa.String(length=16), nullable=False, server_default="text"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("picks", postgresql.JSONB(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_posts_user_id", "posts", ["user_id"])

    for table, constraint in (("post_likes", "uq_post_likes_post_user"), ("post_reposts", "uq_post_reposts_post_user")):
        op.create_table(
            table,
            sa.Column("id", UUID, primary_key=True, nullable=False),
            sa.Column("post_id", UUID, sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
            _user_fk("user_id"),
            _created_at(),
            sa.UniqueConstraint("post_id", "user_id", name=constraint),
        )
        op.create_index(f"ix_{table}_post_id", table, ["post_id"])
        op.create_index(f"ix_{table}_user_id", table, ["user_id"])

    op.create_table(
        "post_comments",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("post_id", UUID, sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id"),
        sa.Column("parent_id", UUID, sa.ForeignKey("post_comments.id", ondelete="CASCADE"), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_post_comments_post_id", "post_comments", ["post_id"])
    op.create_index("ix_post_comments_user_id", "post_comments", ["user_id"])
    op.create_index("ix_post_comments_parent_id", "post_comments", ["parent_id"])

    op.create_table(
        "communities",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        _user_fk("creator_id"),
        sa.Column("sport", sa.String(length=32), nullable=True),
        sa.Column("tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        _created_at(),
        sa.UniqueConstraint("name", name="uq_communities_name"),
    )
    op.create_index("ix_communities_name", "communities", ["name"])
    op.create_index("ix_communities_creator_id", "communities", ["creator_id"])
    op.create_index("ix_communities_sport", "communities", ["sport"])

    op.create_table(
        "community_members",
        sa.Column(
            "community_id", UUID, sa.ForeignKey("communities.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "community_posts",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("community_id", UUID, sa.ForeignKey("communities.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id"),
        sa.Column("post_type", sa.String(length=16), nullable=False, server_default="chat"),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("media_url", sa.String(length=1024), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_community_posts_community_id", "community_posts", ["community_id"])
    op.create_index("ix_community_posts_user_id", "community_posts", ["user_id"])

    op.create_table(
        "community_post_likes",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("post_id", UUID, sa.ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id"),
        _created_at(),
        sa.UniqueConstraint("post_id", "user_id", name="uq_community_post_likes_post_user"),
    )
    op.create_index("ix_community_post_likes_post_id", "community_post_likes", ["post_id"])
    op.create_index("ix_community_post_likes_user_id", "community_post_likes", ["user_id"])

    op.create_table(
        "community_post_comments",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("post_id", UUID, sa.ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id"),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_community_post_comments_post_id", "community_post_comments", ["post_id"])
    op.create_index("ix_community_post_comments_user_id", "community_post_comments", ["user_id"])

    op.create_table(
        "notifications",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        _user_fk("recipient_id"),
        _user_fk("sender_id"),
        sa.Column("type", sa.String(length=100), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.Column("payload", postgresql.JSONB(), nullable=True),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])
    op.create_index("ix_notifications_sender_id", "notifications", ["sender_id"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("community_post_comments")
    op.drop_table("community_post_likes")
    op.drop_table("community_posts")
    op.drop_table("community_members")
    op.drop_table("communities")
    op.drop_table("post_comments")
    op.drop_table("post_reposts")
    op.drop_table("post_likes")
    op.drop_table("posts")
    op.drop_table("follows")
    op.drop_table("users")
