"""Convenience exports for schema layer."""
from .auth import AuthResponse, LoginRequest, ProfileResponse, RegisterRequest
from .communities import (
    CommunityCreate,
    CommunityListResponse,
    CommunityMemberListResponse,
    CommunityMemberResponse,
    CommunityPostCommentCreate,
    CommunityPostCommentListResponse,
    CommunityPostCommentResponse,
    CommunityPostCreate,
    CommunityPostEngagementResponse,
    CommunityPostListResponse,
    CommunityPostResponse,
    CommunityResponse,
    MembershipUpdate,
)
from .follow import FollowActionResponse, FollowStatsResponse, UserCardListResponse, UserCardResponse
from .notifications import NotificationListResponse, NotificationResponse, NotificationSummaryResponse
from .posts import (
    GamePayload,
    PickPayload,
    PickPostCreate,
    PostCommentCreate,
    PostCommentListResponse,
    PostCommentResponse,
    PostCreate,
    PostEngagementResponse,
    PostFeedResponse,
    PostResponse,
)

__all__ = [
    "AuthResponse",
    "LoginRequest",
    "ProfileResponse",
    "RegisterRequest",
    "CommunityCreate",
    "CommunityListResponse",
    "CommunityMemberListResponse",
    "CommunityMemberResponse",
    "CommunityPostCommentCreate",
    "CommunityPostCommentListResponse",
    "CommunityPostCommentResponse",
    "CommunityPostCreate",
    "CommunityPostEngagementResponse",
    "CommunityPostListResponse",
    "CommunityPostResponse",
    "CommunityResponse",
    "MembershipUpdate",
    "FollowActionResponse",
    "FollowStatsResponse",
    "UserCardListResponse",
    "UserCardResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "NotificationSummaryResponse",
    "GamePayload",
    "PickPayload",
    "PickPostCreate",
    "PostCommentCreate",
    "PostCommentListResponse",
    "PostCommentResponse",
    "PostCreate",
    "PostEngagementResponse",
    "PostFeedResponse",
    "PostResponse",
]
