"""Schemas for communities, memberships and community posts."""
from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CommunityCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=120)
    description: str = Field(default="", max_length=1000)
    sport: str | None = Field(default=None, max_length=32)
    tags: list[str] = Field(default_factory=list)
    is_private: bool = False
    image_url: str | None = None

    @field_validator("name", mode="before")
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class CommunityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str = ""
    creator_id: UUID
    creator_username: str | None = None
    sport: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_private: bool = False
    image_url: str | None = None
    created_at: datetime
    member_count: int = 0
    is_joined: bool = False


class CommunityListResponse(BaseModel):
    items: list[CommunityResponse]


class MembershipUpdate(BaseModel):
    """Idempotent membership setter used by join and leave."""

    joined: bool


class CommunityMemberResponse(BaseModel):
    user_id: UUID
    username: str | None = None
    avatar_url: str | None = None
    role: str
    joined_at: datetime


class CommunityMemberListResponse(BaseModel):
    items: list[CommunityMemberResponse]


class CommunityPostCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    post_type: Literal["chat", "image", "video"] = "chat"
    media_url: str | None = None


class CommunityPostResponse(BaseModel):
    id: UUID
    community_id: UUID
    user_id: UUID
    username: str | None = None
    avatar_url: str | None = None
    post_type: Literal["chat", "image", "video"] = "chat"
    content: str
    media_url: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    like_count: int = 0
    comment_count: int = 0
    viewer_has_liked: bool = False


class CommunityPostListResponse(BaseModel):
    items: list[CommunityPostResponse]


class CommunityPostEngagementResponse(BaseModel):
    post_id: UUID
    community_id: UUID
    like_count: int
    comment_count: int
    viewer_has_liked: bool


class CommunityPostCommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)


class CommunityPostCommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    user_id: UUID
    username: str | None = None
    content: str
    created_at: datetime


class CommunityPostCommentListResponse(BaseModel):
    items: list[CommunityPostCommentResponse]


__all__ = [
    "CommunityCreate",
    "CommunityResponse",
    "CommunityListResponse",
    "MembershipUpdate",
    "CommunityMemberResponse",
    "CommunityMemberListResponse",
    "CommunityPostCreate",
    "CommunityPostResponse",
    "CommunityPostListResponse",
    "CommunityPostEngagementResponse",
    "CommunityPostCommentCreate",
    "CommunityPostCommentResponse",
    "CommunityPostCommentListResponse",
]
