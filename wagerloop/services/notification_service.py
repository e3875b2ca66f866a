"""Notification helper logic for SQL-backed storage."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Notification, User
from ..schemas import NotificationResponse
from .realtime import notification_hub

logger = logging.getLogger(__name__)


class NotificationType(StrEnum):
    GENERIC = "generic"
    NEW_FOLLOWER = "follow.new"
    POST_LIKE = "post.like"
    POST_REPOST = "post.repost"
    POST_COMMENT = "post.comment"
    POST_COMMENT_REPLY = "post.comment.reply"
    COMMUNITY_JOIN = "community.join"
    COMMUNITY_POST_LIKE = "community.post.like"
    COMMUNITY_POST_COMMENT = "community.post.comment"


def list_notifications(db: Session, user_id: UUID) -> list[Notification]:
    """Return notifications for the supplied recipient ordered newest first."""

    stmt = select(Notification).where(Notification.recipient_id == user_id).order_by(Notification.created_at.desc())
    return list(db.scalars(stmt))


def count_unread_notifications(db: Session, user_id: UUID) -> int:
    stmt = (
        select(func.count())
        .select_from(Notification)
        .where(Notification.recipient_id == user_id, Notification.read.is_(False))
    )
    return int(db.scalar(stmt) or 0)


def add_notification(
    db: Session,
    *,
    recipient_id: UUID,
    sender_id: UUID,
    content: str,
    type_: NotificationType | str = NotificationType.GENERIC,
    payload: dict[str, Any] | None = None,
) -> Notification | None:
    """Persist a notification unless the sender is notifying themselves."""

    if recipient_id == sender_id:
        return None

    if db.get(User, recipient_id) is None:
        raise ValueError("Recipient does not exist")

    notification = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=str(type_),
        content=content,
        payload=payload,
        created_at=datetime.now(timezone.utc),
    )
    db.add(notification)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to store %s notification for %s", type_, recipient_id)
        return None
    db.refresh(notification)

    _broadcast_notification(notification)
    return notification


def mark_all_read(db: Session, recipient_id: UUID) -> None:
    """Mark all notifications for the given recipient as read."""

    stmt = (
        update(Notification)
        .where(Notification.recipient_id == recipient_id, Notification.read.is_(False))
        .values(read=True)
    )
    db.execute(stmt)
    db.commit()
    _schedule_notification_event(recipient_id, {"type": "notification.read_all"})


def _broadcast_notification(notification: Notification) -> None:
    payload = {
        "type": "notification.created",
        "notification": NotificationResponse.model_validate(notification).model_dump(mode="json"),
    }
    _schedule_notification_event(notification.recipient_id, payload)


def _schedule_notification_event(user_id: UUID | str, payload: dict[str, Any]) -> None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return
    loop.create_task(notification_hub.publish(str(user_id), payload))


__all__ = [
    "NotificationType",
    "list_notifications",
    "count_unread_notifications",
    "add_notification",
    "mark_all_read",
]
