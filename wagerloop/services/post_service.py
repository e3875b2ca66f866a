"""Business logic for feed posts, pick slips and their engagement rows."""
from __future__ import annotations

import logging
from typing import Any, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, literal, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..models import Post, PostComment, PostLike, PostRepost, User
from .notification_service import NotificationType, add_notification

logger = logging.getLogger(__name__)

POST_KIND_TEXT = "text"
POST_KIND_PICK = "pick"


def _get_post_or_404(db: Session, post_id: UUID) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def _commit_or_500(db: Session, detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(detail)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail) from exc


def _commit_relationship_or_500(db: Session, detail: str) -> bool:
    """Commit a like or repost change; returns ``False`` when a concurrent request already made it."""

    try:
        db.commit()
    except (IntegrityError, StaleDataError):
        db.rollback()
        logger.info("%s: row already changed by a concurrent request", detail)
        return False
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(detail)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail) from exc
    return True


def create_post_record(db: Session, *, author: User, content: str) -> Post:
    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Post cannot be empty")
    post = Post(user_id=author.id, kind=POST_KIND_TEXT, content=text)
    db.add(post)
    _commit_or_500(db, "Failed to create post")
    db.refresh(post)
    return post


def create_pick_post_record(db: Session, *, author: User, content: str, picks: list[dict[str, Any]]) -> Post:
    """Persist a pick slip post; ``picks`` are already-validated JSON payloads."""

    if not picks:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="A pick post needs picks")
    post = Post(user_id=author.id, kind=POST_KIND_PICK, content=(content or "").strip(), picks=picks)
    db.add(post)
    _commit_or_500(db, "Failed to create pick post")
    db.refresh(post)
    return post


def _count_column(model, post_id_col, label: str):
    return select(func.count(model.id)).where(model.post_id == post_id_col).scalar_subquery().label(label)


def _viewer_column(model, post_id_col, viewer_id: UUID | None, label: str):
    if viewer_id is None:
        return literal(0).label(label)
    return (
        select(func.count(model.id))
        .where(model.post_id == post_id_col, model.user_id == viewer_id)
        .scalar_subquery()
        .label(label)
    )


def list_feed_records(
    db: Session,
    *,
    viewer_id: UUID | None = None,
    author_id: UUID | None = None,
) -> list[dict[str, Any]]:
    """Return posts newest first with counters and the viewer's own relationship flags."""

    statement = (
        select(
            Post,
            User.username.label("username"),
            User.avatar_url.label("avatar_url"),
            _count_column(PostLike, Post.id, "like_count"),
            _count_column(PostRepost, Post.id, "repost_count"),
            _count_column(PostComment, Post.id, "comment_count"),
            _viewer_column(PostLike, Post.id, viewer_id, "viewer_like"),
            _viewer_column(PostRepost, Post.id, viewer_id, "viewer_repost"),
        )
        .join(User, Post.user_id == User.id)
        .order_by(Post.created_at.desc())
    )
    if author_id is not None:
        statement = statement.where(Post.user_id == author_id)

    records: list[dict[str, Any]] = []
    for row in db.execute(statement).all():
        post = row[0]
        mapping = row._mapping
        records.append(
            {
                "id": post.id,
                "user_id": post.user_id,
                "kind": post.kind,
                "content": post.content,
                "picks": post.picks,
                "created_at": post.created_at,
                "username": cast(str | None, mapping["username"]),
                "avatar_url": cast(str | None, mapping["avatar_url"]),
                "like_count": int(mapping["like_count"] or 0),
                "repost_count": int(mapping["repost_count"] or 0),
                "comment_count": int(mapping["comment_count"] or 0),
                "viewer_has_liked": bool(mapping["viewer_like"]),
                "viewer_has_reposted": bool(mapping["viewer_repost"]),
            }
        )
    return records


def get_post_engagement_snapshot(db: Session, *, post_id: UUID, viewer_id: UUID | None) -> dict[str, Any]:
    """Count rows for ``post_id``; counters are never read from a cached column."""

    _get_post_or_404(db, post_id)
    like_count = db.scalar(select(func.count(PostLike.id)).where(PostLike.post_id == post_id)) or 0
    repost_count = db.scalar(select(func.count(PostRepost.id)).where(PostRepost.post_id == post_id)) or 0
    comment_count = db.scalar(select(func.count(PostComment.id)).where(PostComment.post_id == post_id)) or 0
    viewer_has_liked = False
    viewer_has_reposted = False
    if viewer_id is not None:
        viewer_has_liked = (
            db.scalar(select(PostLike.id).where(PostLike.post_id == post_id, PostLike.user_id == viewer_id).limit(1))
            is not None
        )
        viewer_has_reposted = (
            db.scalar(
                select(PostRepost.id).where(PostRepost.post_id == post_id, PostRepost.user_id == viewer_id).limit(1)
            )
            is not None
        )
    return {
        "post_id": post_id,
        "like_count": int(like_count),
        "repost_count": int(repost_count),
        "comment_count": int(comment_count),
        "viewer_has_liked": viewer_has_liked,
        "viewer_has_reposted": viewer_has_reposted,
    }


def _set_engagement_row(db: Session, model, *, post: Post, user_id: UUID, active: bool) -> bool:
    existing = db.scalar(select(model).where(model.post_id == post.id, model.user_id == user_id))
    if active == (existing is not None):
        return False
    if active:
        db.add(model(post_id=post.id, user_id=user_id))
    else:
        db.delete(existing)
    return True


def set_post_like_state(db: Session, *, post_id: UUID, actor: User, should_like: bool) -> dict[str, Any]:
    """Idempotently set the actor's like and return the canonical engagement snapshot."""

    post = _get_post_or_404(db, post_id)
    changed = _set_engagement_row(db, PostLike, post=post, user_id=actor.id, active=should_like)
    if changed and _commit_relationship_or_500(db, "Failed to update like"):
        if should_like:
            add_notification(
                db,
                recipient_id=post.user_id,
                sender_id=actor.id,
                content=f"{actor.username} liked your post",
                type_=NotificationType.POST_LIKE,
                payload={"post_id": str(post.id)},
            )
    return get_post_engagement_snapshot(db, post_id=post_id, viewer_id=actor.id)


def set_post_repost_state(db: Session, *, post_id: UUID, actor: User, should_repost: bool) -> dict[str, Any]:
    post = _get_post_or_404(db, post_id)
    changed = _set_engagement_row(db, PostRepost, post=post, user_id=actor.id, active=should_repost)
    if changed and _commit_relationship_or_500(db, "Failed to update repost"):
        if should_repost:
            add_notification(
                db,
                recipient_id=post.user_id,
                sender_id=actor.id,
                content=f"{actor.username} reposted your post",
                type_=NotificationType.POST_REPOST,
                payload={"post_id": str(post.id)},
            )
    return get_post_engagement_snapshot(db, post_id=post_id, viewer_id=actor.id)


def list_post_comments(db: Session, *, post_id: UUID) -> list[dict[str, Any]]:
    """Return the comment tree for a post, oldest first."""

    _get_post_or_404(db, post_id)
    stmt = (
        select(PostComment, User.username, User.avatar_url)
        .join(User, PostComment.user_id == User.id)
        .where(PostComment.post_id == post_id)
        .order_by(PostComment.created_at.asc())
    )

    nodes: dict[UUID, dict[str, Any]] = {}
    roots: list[dict[str, Any]] = []
    for comment, username, avatar_url in db.execute(stmt).all():
        node = {
            "id": comment.id,
            "post_id": comment.post_id,
            "user_id": comment.user_id,
            "username": username,
            "avatar_url": avatar_url,
            "content": comment.content,
            "parent_id": comment.parent_id,
            "created_at": comment.created_at,
            "replies": [],
        }
        nodes[comment.id] = node
        if comment.parent_id and comment.parent_id in nodes:
            nodes[comment.parent_id]["replies"].append(node)
        else:
            roots.append(node)
    return roots


def create_post_comment(
    db: Session,
    *,
    post_id: UUID,
    author: User,
    content: str,
    parent_id: UUID | None = None,
) -> dict[str, Any]:
    post = _get_post_or_404(db, post_id)
    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Comment cannot be empty")

    parent: PostComment | None = None
    if parent_id is not None:
        parent = db.get(PostComment, parent_id)
        if parent is None or parent.post_id != post.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid parent comment")

    comment = PostComment(post_id=post.id, user_id=author.id, content=text, parent_id=parent.id if parent else None)
    db.add(comment)
    _commit_or_500(db, "Failed to add comment")
    db.refresh(comment)

    if parent is not None:
        add_notification(
            db,
            recipient_id=parent.user_id,
            sender_id=author.id,
            content=f"{author.username} replied to your comment",
            type_=NotificationType.POST_COMMENT_REPLY,
            payload={"post_id": str(post.id), "comment_id": str(comment.id)},
        )
    else:
        add_notification(
            db,
            recipient_id=post.user_id,
            sender_id=author.id,
            content=f"{author.username} commented on your post",
            type_=NotificationType.POST_COMMENT,
            payload={"post_id": str(post.id), "comment_id": str(comment.id)},
        )

    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "user_id": author.id,
        "username": author.username,
        "avatar_url": author.avatar_url,
        "content": comment.content,
        "parent_id": comment.parent_id,
        "created_at": comment.created_at,
        "replies": [],
    }


def delete_post_record(db: Session, *, post_id: UUID, requester_id: UUID) -> None:
    """Delete a post; only its author may do so."""

    post = _get_post_or_404(db, post_id)
    if post.user_id != requester_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to delete this post")
    db.delete(post)
    _commit_or_500(db, "Failed to delete post")


__all__ = [
    "POST_KIND_TEXT",
    "POST_KIND_PICK",
    "create_post_record",
    "create_pick_post_record",
    "list_feed_records",
    "get_post_engagement_snapshot",
    "set_post_like_state",
    "set_post_repost_state",
    "list_post_comments",
    "create_post_comment",
    "delete_post_record",
]
