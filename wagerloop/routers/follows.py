"""Follow management API routes."""
from __future__ import annotations

import logging
from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import FollowActionResponse, FollowStatsResponse, UserCardListResponse, UserCardResponse
from ..services import (
    FOLLOWERS,
    FOLLOWING,
    get_current_user,
    get_follow_stats,
    get_optional_user,
    list_follow_users,
    set_follow_state,
)
from ..services.follow_service import FollowStats
from ..services.realtime import broadcast_feed_event

router = APIRouter(prefix="/follows", tags=["follows"])

logger = logging.getLogger(__name__)


async def _broadcast_follow_stats(stats: FollowStats) -> None:
    await broadcast_feed_event(
        {
            "type": "follow_stats_updated",
            "user_id": str(stats.user_id),
            "followers_count": stats.followers_count,
            "following_count": stats.following_count,
        }
    )


async def _apply_follow(db: Session, current_user: User, target_id: UUID, should_follow: bool) -> FollowActionResponse:
    changed = set_follow_state(db, follower=current_user, target_id=target_id, should_follow=should_follow)
    stats = get_follow_stats(db, user_id=target_id, viewer_id=current_user.id)
    if changed:
        logger.info("User %s %s %s", current_user.id, "followed" if should_follow else "unfollowed", target_id)
        await _broadcast_follow_stats(stats)
    payload = asdict(stats)
    if not changed:
        payload["status"] = "noop"
    else:
        payload["status"] = "followed" if should_follow else "unfollowed"
    return FollowActionResponse(**payload)


@router.post("/{target_id}", response_model=FollowActionResponse, status_code=status.HTTP_201_CREATED)
async def follow_user_endpoint(
    target_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> FollowActionResponse:
    return await _apply_follow(db, current_user, target_id, True)


@router.delete("/{target_id}", response_model=FollowActionResponse)
async def unfollow_user_endpoint(
    target_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> FollowActionResponse:
    return await _apply_follow(db, current_user, target_id, False)


@router.get("/stats/{user_id}", response_model=FollowStatsResponse)
async def follow_stats_endpoint(
    user_id: UUID,
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> FollowStatsResponse:
    viewer_id = viewer.id if viewer else None
    stats = get_follow_stats(db, user_id=user_id, viewer_id=viewer_id)
    return FollowStatsResponse(**asdict(stats))


@router.get("/{user_id}/followers", response_model=UserCardListResponse)
async def list_followers_endpoint(
    user_id: UUID,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> UserCardListResponse:
    viewer_id = viewer.id if viewer else None
    items = list_follow_users(db, user_id=user_id, direction=FOLLOWERS, viewer_id=viewer_id, limit=limit)
    return UserCardListResponse(items=[UserCardResponse(**item) for item in items])


@router.get("/{user_id}/following", response_model=UserCardListResponse)
async def list_following_endpoint(
    user_id: UUID,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> UserCardListResponse:
    viewer_id = viewer.id if viewer else None
    items = list_follow_users(db, user_id=user_id, direction=FOLLOWING, viewer_id=viewer_id, limit=limit)
    return UserCardListResponse(items=[UserCardResponse(**item) for item in items])
