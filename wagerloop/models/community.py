"""SQLAlchemy ORM models for communities, memberships and community posts."""
from __future__ import annotations

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression, func

from wagerloop.database import Base
from .base import TimestampMixin


class Community(Base):
    __tablename__ = "communities"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(120), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False, default="")
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sport = Column(String(32), nullable=True, index=True)
    tags = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    is_private = Column(Boolean, nullable=False, server_default=expression.false(), default=False)
    image_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    creator = relationship("User", back_populates="communities_created")
    members = relationship("CommunityMember", back_populates="community", cascade="all, delete-orphan")
    posts = relationship("CommunityPost", back_populates="community", cascade="all, delete-orphan")


class CommunityMember(Base):
    __tablename__ = "community_members"

    community_id = Column(
        UUID(as_uuid=True), ForeignKey("communities.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role = Column(String(16), nullable=False, server_default="member", default="member")
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    community = relationship("Community", back_populates="members")
    user = relationship("User", back_populates="community_memberships")


class CommunityPost(TimestampMixin, Base):
    __tablename__ = "community_posts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    community_id = Column(
        UUID(as_uuid=True), ForeignKey("communities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_type = Column(String(16), nullable=False, server_default="chat", default="chat")
    content = Column(Text, nullable=False, default="")
    media_url = Column(String(1024), nullable=True)

    community = relationship("Community", back_populates="posts")
    author = relationship("User", back_populates="community_posts")
    likes = relationship("CommunityPostLike", back_populates="post", cascade="all, delete-orphan")
    comments = relationship("CommunityPostComment", back_populates="post", cascade="all, delete-orphan")


class CommunityPostLike(Base):
    __tablename__ = "community_post_likes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    post_id = Column(
        UUID(as_uuid=True), ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    post = relationship("CommunityPost", back_populates="likes")
    user = relationship("User", back_populates="community_post_likes")

    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_community_post_likes_post_user"),)


class CommunityPostComment(Base):
    __tablename__ = "community_post_comments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    post_id = Column(
        UUID(as_uuid=True), ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    post = relationship("CommunityPost", back_populates="comments")
    user = relationship("User", back_populates="community_post_comments")


__all__ = ["Community", "CommunityMember", "CommunityPost", "CommunityPostLike", "CommunityPostComment"]
