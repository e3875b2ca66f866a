"""Pydantic schemas for feed posts, pick slips and engagement counters."""
from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

PickType = Literal["moneyline", "spread", "total", "player_prop"]
PickSide = Literal["home", "away", "over", "under", "draw"]


class GamePayload(BaseModel):
    id: str
    home_team: str
    away_team: str
    sport: str | None = None
    commence_time: datetime | None = None


class PickPayload(BaseModel):
    """A single betting selection on a pick slip."""

    id: str
    game: GamePayload
    pick_type: PickType
    pick_side: PickSide
    odds: str
    player_name: str | None = None
    prop_type: str | None = None
    prop_value: float | None = None
    stake: float | None = Field(default=None, ge=0)
    reasoning: str | None = Field(default=None, max_length=500)


class PostCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=280)


class PickPostCreate(BaseModel):
    content: str = Field(default="", max_length=280)
    picks: list[PickPayload] = Field(..., min_length=1)


class PostResponse(BaseModel):
    """Serialized representation of a persisted post."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    kind: Literal["text", "pick"] = "text"
    content: str
    picks: list[PickPayload] | None = None
    created_at: datetime
    username: str | None = None
    avatar_url: str | None = None
    like_count: int = 0
    repost_count: int = 0
    comment_count: int = 0
    viewer_has_liked: bool = False
    viewer_has_reposted: bool = False


class PostFeedResponse(BaseModel):
    """Envelope used when returning a collection of posts."""

    items: list[PostResponse]


class PostEngagementResponse(BaseModel):
    """Canonical like/repost/comment counters for one post."""

    post_id: UUID
    like_count: int
    repost_count: int
    comment_count: int
    viewer_has_liked: bool
    viewer_has_reposted: bool


class PostCommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)
    parent_id: UUID | None = None


class PostCommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    user_id: UUID
    username: str | None = None
    avatar_url: str | None = None
    content: str
    parent_id: UUID | None = None
    created_at: datetime
    replies: list["PostCommentResponse"] = Field(default_factory=list)


class PostCommentListResponse(BaseModel):
    items: list[PostCommentResponse]


PostCommentResponse.model_rebuild()


__all__ = [
    "GamePayload",
    "PickPayload",
    "PostCreate",
    "PickPostCreate",
    "PostResponse",
    "PostFeedResponse",
    "PostEngagementResponse",
    "PostCommentCreate",
    "PostCommentResponse",
    "PostCommentListResponse",
]
