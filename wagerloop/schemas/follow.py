"""Schemas supporting follower APIs."""
from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel


class FollowStatsResponse(BaseModel):
    user_id: UUID
    followers_count: int
    following_count: int
    is_following: bool


class FollowActionResponse(FollowStatsResponse):
    status: Literal["followed", "unfollowed", "noop"]


class UserCardResponse(FollowStatsResponse):
    """A user row in follower lists and search results; ``is_following`` is the viewer's own edge."""

    username: str
    display_name: str | None = None
    avatar_url: str | None = None


class UserCardListResponse(BaseModel):
    items: list[UserCardResponse]


__all__ = ["FollowStatsResponse", "FollowActionResponse", "UserCardResponse", "UserCardListResponse"]
