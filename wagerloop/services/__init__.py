"""Convenience exports for service layer."""
from .auth_service import (
    authenticate_user,
    create_access_token,
    decode_access_token,
    get_current_user,
    get_optional_user,
    register_user,
)
from .community_service import (
    create_community,
    create_community_post,
    create_community_post_comment,
    get_community_post_engagement,
    get_community_record,
    list_communities,
    list_community_members,
    list_community_post_comments,
    list_community_posts,
    set_community_post_like_state,
    set_membership,
)
from .follow_service import (
    FOLLOWERS,
    FOLLOWING,
    FollowStats,
    get_follow_stats,
    list_follow_users,
    search_users,
    set_follow_state,
    suggest_users,
)
from .notification_service import (
    NotificationType,
    add_notification,
    count_unread_notifications,
    list_notifications,
    mark_all_read,
)
from .post_service import (
    create_pick_post_record,
    create_post_comment,
    create_post_record,
    delete_post_record,
    get_post_engagement_snapshot,
    list_feed_records,
    list_post_comments,
    set_post_like_state,
    set_post_repost_state,
)

__all__ = [
    "authenticate_user",
    "register_user",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "get_optional_user",
    "create_community",
    "create_community_post",
    "create_community_post_comment",
    "get_community_post_engagement",
    "get_community_record",
    "list_communities",
    "list_community_members",
    "list_community_post_comments",
    "list_community_posts",
    "set_community_post_like_state",
    "set_membership",
    "FOLLOWERS",
    "FOLLOWING",
    "FollowStats",
    "get_follow_stats",
    "list_follow_users",
    "search_users",
    "set_follow_state",
    "suggest_users",
    "NotificationType",
    "add_notification",
    "count_unread_notifications",
    "list_notifications",
    "mark_all_read",
    "create_pick_post_record",
    "create_post_comment",
    "create_post_record",
    "delete_post_record",
    "get_post_engagement_snapshot",
    "list_feed_records",
    "list_post_comments",
    "set_post_like_state",
    "set_post_repost_state",
]
