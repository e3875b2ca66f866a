"""Business logic for follower relationships."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, literal, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, aliased
from sqlalchemy.orm.exc import StaleDataError

from ..models import Follow, User
from .notification_service import NotificationType, add_notification

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FollowStats:
    user_id: UUID
    followers_count: int
    following_count: int
    is_following: bool


def _get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def set_follow_state(db: Session, *, follower: User, target_id: UUID, should_follow: bool) -> bool:
    """Create or remove the follow row; returns ``True`` when a row changed."""

    follower_id = cast(UUID, follower.id)
    if follower_id == target_id:
        if should_follow:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cannot follow yourself")
        return False

    _get_user_or_404(db, target_id)

    existing = db.scalar(
        select(Follow).where(Follow.follower_id == follower_id, Follow.following_id == target_id)
    )
    if should_follow == (existing is not None):
        return False

    if should_follow:
        db.add(Follow(follower_id=follower_id, following_id=target_id))
    else:
        db.delete(existing)
    try:
        db.commit()
    except (IntegrityError, StaleDataError):
        db.rollback()
        logger.info("Follow %s -> %s already changed by a concurrent request", follower_id, target_id)
        return False
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Follow update failed for %s -> %s", follower_id, target_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to update follow",
        ) from exc

    if should_follow:
        add_notification(
            db,
            recipient_id=target_id,
            sender_id=follower_id,
            content=f"{follower.username} started following you",
            type_=NotificationType.NEW_FOLLOWER,
            payload={"follower_id": str(follower_id)},
        )
    return True


def get_follow_stats(db: Session, *, user_id: UUID, viewer_id: UUID | None = None) -> FollowStats:
    _get_user_or_404(db, user_id)

    followers_count = db.scalar(
        select(func.count()).select_from(Follow).where(Follow.following_id == user_id)
    ) or 0
    following_count = db.scalar(
        select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    ) or 0

    is_following = False
    if viewer_id is not None:
        is_following = (
            db.scalar(
                select(Follow.follower_id).where(
                    Follow.follower_id == viewer_id,
                    Follow.following_id == user_id,
                )
            )
            is not None
        )

    return FollowStats(
        user_id=user_id,
        followers_count=int(followers_count),
        following_count=int(following_count),
        is_following=is_following,
    )


FOLLOWERS = "followers"
FOLLOWING = "following"


def _user_card_statement(viewer_id: UUID | None):
    """Select users with their own follow counters and whether ``viewer_id`` follows each one."""

    followers = aliased(Follow)
    following = aliased(Follow)
    viewer_edge = aliased(Follow)
    followers_count = (
        select(func.count()).select_from(followers).where(followers.following_id == User.id).scalar_subquery()
    )
    following_count = (
        select(func.count()).select_from(following).where(following.follower_id == User.id).scalar_subquery()
    )
    if viewer_id is None:
        is_following = literal(False)
    else:
        is_following = (
            select(viewer_edge.follower_id)
            .where(viewer_edge.follower_id == viewer_id, viewer_edge.following_id == User.id)
            .exists()
        )
    return select(
        User,
        followers_count.label("followers_count"),
        following_count.label("following_count"),
        is_following.label("is_following"),
    )


def _user_cards(db: Session, statement) -> list[dict[str, Any]]:
    return [
        {
            "user_id": user.id,
            "username": user.username,
            "display_name": user.display_name,
            "avatar_url": user.avatar_url,
            "followers_count": int(followers_count or 0),
            "following_count": int(following_count or 0),
            "is_following": bool(is_following),
        }
        for user, followers_count, following_count, is_following in db.execute(statement).all()
    ]


def list_follow_users(
    db: Session,
    *,
    user_id: UUID,
    direction: str,
    viewer_id: UUID | None = None,
    limit: int = 100,
) -> list[dict[str, Any]]:
    """Return the followers of ``user_id`` or the users it follows, most recent first.

    ``is_following`` on each row is the viewer's own relationship to that user,
    so every row can be toggled on its own.
    """

    _get_user_or_404(db, user_id)
    edge = aliased(Follow)
    statement = _user_card_statement(viewer_id)
    if direction == FOLLOWERS:
        statement = statement.join(edge, edge.follower_id == User.id).where(edge.following_id == user_id)
    elif direction == FOLLOWING:
        statement = statement.join(edge, edge.following_id == User.id).where(edge.follower_id == user_id)
    else:
        raise ValueError(f"Unknown follow direction: {direction}")
    return _user_cards(db, statement.order_by(edge.created_at.desc()).limit(limit))


def search_users(db: Session, *, query: str, viewer_id: UUID | None = None, limit: int = 20) -> list[dict[str, Any]]:
    text = (query or "").strip()
    if not text:
        return []
    statement = (
        _user_card_statement(viewer_id)
        .where(User.username.ilike(f"%{text}%"))
        .order_by(User.username.asc())
        .limit(limit)
    )
    return _user_cards(db, statement)


def suggest_users(db: Session, *, viewer_id: UUID | None = None, limit: int = 10) -> list[dict[str, Any]]:
    """Newest users the viewer does not follow yet, excluding the viewer."""

    statement = _user_card_statement(viewer_id)
    if viewer_id is not None:
        followed = select(Follow.following_id).where(Follow.follower_id == viewer_id)
        statement = statement.where(User.id != viewer_id, User.id.not_in(followed))
    return _user_cards(db, statement.order_by(User.created_at.desc()).limit(limit))


__all__ = [
    "FOLLOWERS",
    "FOLLOWING",
    "FollowStats",
    "get_follow_stats",
    "list_follow_users",
    "search_users",
    "set_follow_state",
    "suggest_users",
]
