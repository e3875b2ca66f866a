"""Convenience exports for ORM models."""
from .community import Community, CommunityMember, CommunityPost, CommunityPostComment, CommunityPostLike
from .follow import Follow
from .notification import Notification
from .post import Post, PostComment, PostLike, PostRepost
from .user import User

__all__ = [
    "Community",
    "CommunityMember",
    "CommunityPost",
    "CommunityPostComment",
    "CommunityPostLike",
    "Follow",
    "Notification",
    "Post",
    "PostComment",
    "PostLike",
    "PostRepost",
    "User",
]
