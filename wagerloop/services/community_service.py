"""Business logic for communities, memberships and community posts."""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, literal, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..constants import CREATOR_CANNOT_LEAVE_DETAIL
from ..models import Community, CommunityMember, CommunityPost, CommunityPostComment, CommunityPostLike, User
from ..schemas import CommunityCreate
from .notification_service import NotificationType, add_notification

logger = logging.getLogger(__name__)

ROLE_OWNER = "owner"
ROLE_MEMBER = "member"


def _get_community_or_404(db: Session, community_id: UUID) -> Community:
    community = db.get(Community, community_id)
    if community is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Community not found")
    return community


def _get_post_or_404(db: Session, post_id: UUID) -> CommunityPost:
    post = db.get(CommunityPost, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Community post not found")
    return post


def _commit_or_500(db: Session, detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(detail)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail) from exc


def _commit_relationship_or_500(db: Session, detail: str) -> bool:
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


def _membership(db: Session, community_id: UUID, user_id: UUID) -> CommunityMember | None:
    return db.get(CommunityMember, (community_id, user_id))


def _member_count_column():
    return (
        select(func.count())
        .select_from(CommunityMember)
        .where(CommunityMember.community_id == Community.id)
        .scalar_subquery()
        .label("member_count")
    )


def _joined_column(viewer_id: UUID | None):
    if viewer_id is None:
        return literal(0).label("viewer_joined")
    return (
        select(func.count())
        .select_from(CommunityMember)
        .where(CommunityMember.community_id == Community.id, CommunityMember.user_id == viewer_id)
        .scalar_subquery()
        .label("viewer_joined")
    )


def _serialize_community(community: Community, *, creator_username, member_count, is_joined) -> dict[str, Any]:
    return {
        "id": community.id,
        "name": community.name,
        "description": community.description or "",
        "creator_id": community.creator_id,
        "creator_username": creator_username,
        "sport": community.sport,
        "tags": list(community.tags or []),
        "is_private": bool(community.is_private),
        "image_url": community.image_url,
        "created_at": community.created_at,
        "member_count": int(member_count or 0),
        "is_joined": bool(is_joined),
    }


def list_communities(
    db: Session,
    *,
    viewer_id: UUID | None = None,
    query: str | None = None,
    sport: str | None = None,
    joined_only: bool = False,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Return communities ordered by member count, then name."""

    member_count = _member_count_column()
    viewer_joined = _joined_column(viewer_id)
    stmt = (
        select(Community, User.username, member_count, viewer_joined)
        .join(User, Community.creator_id == User.id)
        .order_by(member_count.desc(), Community.name.asc())
        .limit(limit)
    )
    if query:
        pattern = f"%{query.strip()}%"
        stmt = stmt.where(or_(Community.name.ilike(pattern), Community.description.ilike(pattern)))
    if sport:
        stmt = stmt.where(Community.sport == sport)
    if joined_only and viewer_id is not None:
        stmt = stmt.where(
            Community.id.in_(select(CommunityMember.community_id).where(CommunityMember.user_id == viewer_id))
        )

    return [
        _serialize_community(community, creator_username=username, member_count=count, is_joined=joined)
        for community, username, count, joined in db.execute(stmt).all()
    ]


def get_community_record(db: Session, *, community_id: UUID, viewer_id: UUID | None = None) -> dict[str, Any]:
    community = _get_community_or_404(db, community_id)
    member_count = db.scalar(
        select(func.count()).select_from(CommunityMember).where(CommunityMember.community_id == community_id)
    )
    is_joined = viewer_id is not None and _membership(db, community_id, viewer_id) is not None
    creator = db.get(User, community.creator_id)
    return _serialize_community(
        community,
        creator_username=creator.username if creator else None,
        member_count=member_count,
        is_joined=is_joined,
    )


def create_community(db: Session, *, creator: User, payload: CommunityCreate) -> dict[str, Any]:
    """Create a community; the creator joins it as owner."""

    name = payload.name.strip()
    if db.scalar(select(Community.id).where(func.lower(Community.name) == name.lower())):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Community name already taken")

    community = Community(
        name=name,
        description=payload.description.strip(),
        creator_id=creator.id,
        sport=payload.sport,
        tags=[tag.strip() for tag in payload.tags if tag.strip()],
        is_private=payload.is_private,
        image_url=payload.image_url,
    )
    db.add(community)
    try:
        db.flush()
        db.add(CommunityMember(community_id=community.id, user_id=creator.id, role=ROLE_OWNER))
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Community name already taken") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create community %s", name)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to create community") from exc

    return get_community_record(db, community_id=community.id, viewer_id=creator.id)


def set_membership(db: Session, *, community_id: UUID, user: User, joined: bool) -> tuple[dict[str, Any], bool]:
    """Idempotently join or leave; returns the updated community and whether a row changed.

    The member count in the returned record is counted from membership rows
    after the change, so it reflects concurrent joins by other users.
    """

    community = _get_community_or_404(db, community_id)
    existing = _membership(db, community_id, user.id)

    changed = False
    if joined and existing is None:
        db.add(CommunityMember(community_id=community_id, user_id=user.id, role=ROLE_MEMBER))
        changed = True
    elif not joined and existing is not None:
        if community.creator_id == user.id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CREATOR_CANNOT_LEAVE_DETAIL)
        db.delete(existing)
        changed = True

    if changed:
        try:
            db.commit()
        except (IntegrityError, StaleDataError):
            # A concurrent request for the same user already made the change.
            db.rollback()
            changed = False
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Membership update failed for %s in %s", user.id, community_id)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Unable to update membership",
            ) from exc

    if changed and joined:
        add_notification(
            db,
            recipient_id=community.creator_id,
            sender_id=user.id,
            content=f"{user.username} joined {community.name}",
            type_=NotificationType.COMMUNITY_JOIN,
            payload={"community_id": str(community_id)},
        )

    return get_community_record(db, community_id=community_id, viewer_id=user.id), changed


def list_community_members(db: Session, *, community_id: UUID, limit: int = 100) -> list[dict[str, Any]]:
    _get_community_or_404(db, community_id)
    stmt = (
        select(CommunityMember, User.username, User.avatar_url)
        .join(User, CommunityMember.user_id == User.id)
        .where(CommunityMember.community_id == community_id)
        .order_by(CommunityMember.joined_at.asc())
        .limit(limit)
    )
    return [
        {
            "user_id": member.user_id,
            "username": username,
            "avatar_url": avatar_url,
            "role": member.role,
            "joined_at": member.joined_at,
        }
        for member, username, avatar_url in db.execute(stmt).all()
    ]


def _require_member(db: Session, community: Community, user_id: UUID) -> None:
    if _membership(db, community.id, user_id) is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Join the community to take part")


def _serialize_post(post: CommunityPost, *, username, avatar_url, like_count, comment_count, liked) -> dict[str, Any]:
    return {
        "id": post.id,
        "community_id": post.community_id,
        "user_id": post.user_id,
        "username": username,
        "avatar_url": avatar_url,
        "post_type": post.post_type,
        "content": post.content,
        "media_url": post.media_url,
        "created_at": post.created_at,
        "updated_at": post.updated_at,
        "like_count": int(like_count or 0),
        "comment_count": int(comment_count or 0),
        "viewer_has_liked": bool(liked),
    }


def create_community_post(
    db: Session,
    *,
    community_id: UUID,
    author: User,
    content: str,
    post_type: str = "chat",
    media_url: str | None = None,
) -> dict[str, Any]:
    community = _get_community_or_404(db, community_id)
    _require_member(db, community, author.id)
    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Post cannot be empty")
    if post_type != "chat" and not media_url:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Media posts need a media_url")

    post = CommunityPost(
        community_id=community_id,
        user_id=author.id,
        post_type=post_type,
        content=text,
        media_url=media_url,
    )
    db.add(post)
    _commit_or_500(db, "Failed to create community post")
    db.refresh(post)
    return _serialize_post(
        post, username=author.username, avatar_url=author.avatar_url, like_count=0, comment_count=0, liked=False
    )


def list_community_posts(
    db: Session,
    *,
    community_id: UUID,
    viewer_id: UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    _get_community_or_404(db, community_id)
    like_count = (
        select(func.count(CommunityPostLike.id))
        .where(CommunityPostLike.post_id == CommunityPost.id)
        .scalar_subquery()
    )
    comment_count = (
        select(func.count(CommunityPostComment.id))
        .where(CommunityPostComment.post_id == CommunityPost.id)
        .scalar_subquery()
    )
    if viewer_id is None:
        viewer_like = literal(0)
    else:
        viewer_like = (
            select(func.count(CommunityPostLike.id))
            .where(CommunityPostLike.post_id == CommunityPost.id, CommunityPostLike.user_id == viewer_id)
            .scalar_subquery()
        )
    stmt = (
        select(CommunityPost, User.username, User.avatar_url, like_count, comment_count, viewer_like)
        .join(User, CommunityPost.user_id == User.id)
        .where(CommunityPost.community_id == community_id)
        .order_by(CommunityPost.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return [
        _serialize_post(post, username=username, avatar_url=avatar, like_count=likes, comment_count=comments, liked=liked)
        for post, username, avatar, likes, comments, liked in db.execute(stmt).all()
    ]


def get_community_post_engagement(db: Session, *, post_id: UUID, viewer_id: UUID | None) -> dict[str, Any]:
    post = _get_post_or_404(db, post_id)
    like_count = db.scalar(select(func.count(CommunityPostLike.id)).where(CommunityPostLike.post_id == post_id)) or 0
    comment_count = (
        db.scalar(select(func.count(CommunityPostComment.id)).where(CommunityPostComment.post_id == post_id)) or 0
    )
    liked = False
    if viewer_id is not None:
        liked = (
            db.scalar(
                select(CommunityPostLike.id)
                .where(CommunityPostLike.post_id == post_id, CommunityPostLike.user_id == viewer_id)
                .limit(1)
            )
            is not None
        )
    return {
        "post_id": post_id,
        "community_id": post.community_id,
        "like_count": int(like_count),
        "comment_count": int(comment_count),
        "viewer_has_liked": liked,
    }


def set_community_post_like_state(
    db: Session,
    *,
    post_id: UUID,
    actor: User,
    should_like: bool,
) -> dict[str, Any]:
    post = _get_post_or_404(db, post_id)
    existing = db.scalar(
        select(CommunityPostLike).where(CommunityPostLike.post_id == post_id, CommunityPostLike.user_id == actor.id)
    )
    if should_like != (existing is not None):
        if should_like:
            db.add(CommunityPostLike(post_id=post_id, user_id=actor.id))
        else:
            db.delete(existing)
        if _commit_relationship_or_500(db, "Failed to update like") and should_like:
            add_notification(
                db,
                recipient_id=post.user_id,
                sender_id=actor.id,
                content=f"{actor.username} liked your community post",
                type_=NotificationType.COMMUNITY_POST_LIKE,
                payload={"post_id": str(post_id), "community_id": str(post.community_id)},
            )
    return get_community_post_engagement(db, post_id=post_id, viewer_id=actor.id)


def list_community_post_comments(db: Session, *, post_id: UUID) -> list[dict[str, Any]]:
    _get_post_or_404(db, post_id)
    stmt = (
        select(CommunityPostComment, User.username)
        .join(User, CommunityPostComment.user_id == User.id)
        .where(CommunityPostComment.post_id == post_id)
        .order_by(CommunityPostComment.created_at.asc())
    )
    return [
        {
            "id": comment.id,
            "post_id": comment.post_id,
            "user_id": comment.user_id,
            "username": username,
            "content": comment.content,
            "created_at": comment.created_at,
        }
        for comment, username in db.execute(stmt).all()
    ]


def create_community_post_comment(db: Session, *, post_id: UUID, author: User, content: str) -> dict[str, Any]:
    post = _get_post_or_404(db, post_id)
    _require_member(db, post.community, author.id)
    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Comment cannot be empty")

    comment = CommunityPostComment(post_id=post_id, user_id=author.id, content=text)
    db.add(comment)
    _commit_or_500(db, "Failed to add comment")
    db.refresh(comment)

    add_notification(
        db,
        recipient_id=post.user_id,
        sender_id=author.id,
        content=f"{author.username} commented on your community post",
        type_=NotificationType.COMMUNITY_POST_COMMENT,
        payload={"post_id": str(post_id), "community_id": str(post.community_id)},
    )
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "user_id": author.id,
        "username": author.username,
        "content": comment.content,
        "created_at": comment.created_at,
    }


__all__ = [
    "list_communities",
    "get_community_record",
    "create_community",
    "set_membership",
    "list_community_members",
    "create_community_post",
    "list_community_posts",
    "get_community_post_engagement",
    "set_community_post_like_state",
    "list_community_post_comments",
    "create_community_post_comment",
]
