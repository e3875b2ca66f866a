"""Feed post API routes: text and pick posts, likes, reposts and comments."""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import (
    PickPostCreate,
    PostCommentCreate,
    PostCommentListResponse,
    PostCommentResponse,
    PostCreate,
    PostEngagementResponse,
    PostFeedResponse,
    PostResponse,
)
from ..services import (
    create_pick_post_record,
    create_post_comment,
    create_post_record,
    delete_post_record,
    get_current_user,
    get_optional_user,
    get_post_engagement_snapshot,
    list_feed_records,
    list_post_comments,
    set_post_like_state,
    set_post_repost_state,
)
from ..services.realtime import broadcast_feed_event

router = APIRouter(prefix="/posts", tags=["posts"])

logger = logging.getLogger(__name__)


async def _broadcast_engagement_snapshot(snapshot: dict[str, Any]) -> None:
    # Viewer flags belong to the actor and are not fanned out.
    await broadcast_feed_event(
        {
            "type": "post_engagement_updated",
            "post_id": str(snapshot["post_id"]),
            "like_count": int(snapshot.get("like_count") or 0),
            "repost_count": int(snapshot.get("repost_count") or 0),
            "comment_count": int(snapshot.get("comment_count") or 0),
        }
    )


def _fresh_post_response(post, author: User) -> PostResponse:
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        kind=post.kind,
        content=post.content,
        picks=post.picks,
        created_at=post.created_at,
        username=author.username,
        avatar_url=author.avatar_url,
    )


async def _announce_post(post) -> None:
    await broadcast_feed_event(
        {
            "type": "post_created",
            "post_id": str(post.id),
            "user_id": str(post.user_id),
            "kind": post.kind,
        }
    )


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    payload: PostCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    post = create_post_record(db, author=current_user, content=payload.content)
    await _announce_post(post)
    return _fresh_post_response(post, current_user)


@router.post("/picks", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_pick_post_endpoint(
    payload: PickPostCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    picks = [pick.model_dump(mode="json") for pick in payload.picks]
    post = create_pick_post_record(db, author=current_user, content=payload.content, picks=picks)
    await _announce_post(post)
    return _fresh_post_response(post, current_user)


@router.get("/feed", response_model=PostFeedResponse)
async def feed_endpoint(
    db: Session = Depends(get_session),
    current_user: User | None = Depends(get_optional_user),
) -> PostFeedResponse:
    viewer_id = current_user.id if current_user else None
    return PostFeedResponse(items=[PostResponse(**item) for item in list_feed_records(db, viewer_id=viewer_id)])


@router.get("/by-user/{username}", response_model=PostFeedResponse)
async def posts_by_user_endpoint(
    username: str,
    db: Session = Depends(get_session),
    current_user: User | None = Depends(get_optional_user),
) -> PostFeedResponse:
    user = db.scalars(select(User).where(User.username == username)).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    viewer_id = current_user.id if current_user else None
    items = list_feed_records(db, viewer_id=viewer_id, author_id=user.id)
    return PostFeedResponse(items=[PostResponse(**item) for item in items])


@router.get("/{post_id}/engagement", response_model=PostEngagementResponse)
async def post_engagement_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User | None = Depends(get_optional_user),
) -> PostEngagementResponse:
    viewer_id = current_user.id if current_user else None
    return PostEngagementResponse(**get_post_engagement_snapshot(db, post_id=post_id, viewer_id=viewer_id))


@router.post("/{post_id}/likes", response_model=PostEngagementResponse)
async def like_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostEngagementResponse:
    payload = set_post_like_state(db, post_id=post_id, actor=current_user, should_like=True)
    await _broadcast_engagement_snapshot(payload)
    return PostEngagementResponse(**payload)


@router.delete("/{post_id}/likes", response_model=PostEngagementResponse)
async def unlike_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostEngagementResponse:
    payload = set_post_like_state(db, post_id=post_id, actor=current_user, should_like=False)
    await _broadcast_engagement_snapshot(payload)
    return PostEngagementResponse(**payload)


@router.post("/{post_id}/reposts", response_model=PostEngagementResponse)
async def repost_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostEngagementResponse:
    payload = set_post_repost_state(db, post_id=post_id, actor=current_user, should_repost=True)
    await _broadcast_engagement_snapshot(payload)
    return PostEngagementResponse(**payload)


@router.delete("/{post_id}/reposts", response_model=PostEngagementResponse)
async def remove_repost_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostEngagementResponse:
    payload = set_post_repost_state(db, post_id=post_id, actor=current_user, should_repost=False)
    await _broadcast_engagement_snapshot(payload)
    return PostEngagementResponse(**payload)


@router.get("/{post_id}/comments", response_model=PostCommentListResponse)
async def list_post_comments_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
) -> PostCommentListResponse:
    items = list_post_comments(db, post_id=post_id)
    return PostCommentListResponse(items=[PostCommentResponse(**item) for item in items])


@router.post("/{post_id}/comments", response_model=PostCommentResponse, status_code=status.HTTP_201_CREATED)
async def create_post_comment_endpoint(
    post_id: UUID,
    payload: PostCommentCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostCommentResponse:
    comment = create_post_comment(
        db,
        post_id=post_id,
        author=current_user,
        content=payload.content,
        parent_id=payload.parent_id,
    )
    snapshot = get_post_engagement_snapshot(db, post_id=post_id, viewer_id=current_user.id)
    await _broadcast_engagement_snapshot(snapshot)
    return PostCommentResponse(**comment)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> None:
    delete_post_record(db, post_id=post_id, requester_id=current_user.id)
    await broadcast_feed_event({"type": "post_deleted", "post_id": str(post_id)})
