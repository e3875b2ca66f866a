"""Community API routes: discovery, membership and community posts."""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import (
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
from ..services import (
    create_community,
    create_community_post,
    create_community_post_comment,
    get_community_post_engagement,
    get_community_record,
    get_current_user,
    get_optional_user,
    list_communities,
    list_community_members,
    list_community_post_comments,
    list_community_posts,
    set_community_post_like_state,
    set_membership,
)
from ..services.realtime import broadcast_feed_event

router = APIRouter(prefix="/communities", tags=["communities"])

logger = logging.getLogger(__name__)


async def _broadcast_post_engagement(snapshot: dict[str, Any]) -> None:
    await broadcast_feed_event(
        {
            "type": "community_post_engagement_updated",
            "post_id": str(snapshot["post_id"]),
            "community_id": str(snapshot["community_id"]),
            "like_count": int(snapshot.get("like_count") or 0),
            "comment_count": int(snapshot.get("comment_count") or 0),
        }
    )


@router.get("/", response_model=CommunityListResponse)
async def list_communities_endpoint(
    q: str | None = Query(default=None, max_length=120),
    sport: str | None = Query(default=None, max_length=32),
    joined: bool = False,
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> CommunityListResponse:
    viewer_id = viewer.id if viewer else None
    items = list_communities(db, viewer_id=viewer_id, query=q, sport=sport, joined_only=joined, limit=limit)
    return CommunityListResponse(items=[CommunityResponse(**item) for item in items])


@router.post("/", response_model=CommunityResponse, status_code=status.HTTP_201_CREATED)
async def create_community_endpoint(
    payload: CommunityCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> CommunityResponse:
    record = create_community(db, creator=current_user, payload=payload)
    logger.info("Community %s created by %s", record["id"], current_user.id)
    return CommunityResponse(**record)


@router.get("/{community_id}", response_model=CommunityResponse)
async def get_community_endpoint(
    community_id: UUID,
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> CommunityResponse:
    viewer_id = viewer.id if viewer else None
    return CommunityResponse(**get_community_record(db, community_id=community_id, viewer_id=viewer_id))


@router.put("/{community_id}/membership", response_model=CommunityResponse)
async def set_membership_endpoint(
    community_id: UUID,
    payload: MembershipUpdate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> CommunityResponse:
    """Join (``joined=true``) or leave (``joined=false``); returns the updated community."""

    record, changed = set_membership(db, community_id=community_id, user=current_user, joined=payload.joined)
    if changed:
        await broadcast_feed_event(
            {
                "type": "community_membership_updated",
                "community_id": str(community_id),
                "member_count": record["member_count"],
            }
        )
    return CommunityResponse(**record)


@router.get("/{community_id}/members", response_model=CommunityMemberListResponse)
async def list_members_endpoint(
    community_id: UUID,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_session),
) -> CommunityMemberListResponse:
    items = list_community_members(db, community_id=community_id, limit=limit)
    return CommunityMemberListResponse(items=[CommunityMemberResponse(**item) for item in items])


@router.get("/{community_id}/posts", response_model=CommunityPostListResponse)
async def list_community_posts_endpoint(
    community_id: UUID,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> CommunityPostListResponse:
    viewer_id = viewer.id if viewer else None
    items = list_community_posts(db, community_id=community_id, viewer_id=viewer_id, limit=limit, offset=offset)
    return CommunityPostListResponse(items=[CommunityPostResponse(**item) for item in items])


@router.post("/{community_id}/posts", response_model=CommunityPostResponse, status_code=status.HTTP_201_CREATED)
async def create_community_post_endpoint(
    community_id: UUID,
    payload: CommunityPostCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> CommunityPostResponse:
    record = create_community_post(
        db,
        community_id=community_id,
        author=current_user,
        content=payload.content,
        post_type=payload.post_type,
        media_url=payload.media_url,
    )
    return CommunityPostResponse(**record)


@router.get("/posts/{post_id}/engagement", response_model=CommunityPostEngagementResponse)
async def community_post_engagement_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> CommunityPostEngagementResponse:
    viewer_id = viewer.id if viewer else None
    return CommunityPostEngagementResponse(**get_community_post_engagement(db, post_id=post_id, viewer_id=viewer_id))


@router.post("/posts/{post_id}/likes", response_model=CommunityPostEngagementResponse)
async def like_community_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> CommunityPostEngagementResponse:
    snapshot = set_community_post_like_state(db, post_id=post_id, actor=current_user, should_like=True)
    await _broadcast_post_engagement(snapshot)
    return CommunityPostEngagementResponse(**snapshot)


@router.delete("/posts/{post_id}/likes", response_model=CommunityPostEngagementResponse)
async def unlike_community_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> CommunityPostEngagementResponse:
    snapshot = set_community_post_like_state(db, post_id=post_id, actor=current_user, should_like=False)
    await _broadcast_post_engagement(snapshot)
    return CommunityPostEngagementResponse(**snapshot)


@router.get("/posts/{post_id}/comments", response_model=CommunityPostCommentListResponse)
async def list_community_post_comments_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
) -> CommunityPostCommentListResponse:
    items = list_community_post_comments(db, post_id=post_id)
    return CommunityPostCommentListResponse(items=[CommunityPostCommentResponse(**item) for item in items])


@router.post(
    "/posts/{post_id}/comments",
    response_model=CommunityPostCommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_community_post_comment_endpoint(
    post_id: UUID,
    payload: CommunityPostCommentCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> CommunityPostCommentResponse:
    comment = create_community_post_comment(db, post_id=post_id, author=current_user, content=payload.content)
    snapshot = get_community_post_engagement(db, post_id=post_id, viewer_id=current_user.id)
    await _broadcast_post_engagement(snapshot)
    return CommunityPostCommentResponse(**comment)
