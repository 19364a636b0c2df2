"""
Read side of in-app notifications.
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from crewup.core.errors import NotFoundError
from crewup.db.models.notification import Notification
from crewup.db.models.timestamps import utcnow

logger = logging.getLogger(__name__)


def list_notifications(db: Session, user_id: str, unread_only: bool = False, limit: int = 50) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))
    return query.order_by(Notification.created_at.desc()).limit(limit).all()


def mark_notification_read(db: Session, user_id: str, notification_id: str) -> Notification:
    """
    Mark one of the user's notifications as read. Already-read notifications
    keep their original read_at.

    Raises:
        NotFoundError: No such notification for this user
    """
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if notification is None:
        raise NotFoundError("Notification not found")

    if notification.read_at is None:
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)
        logger.debug(f"Notification read: user_id={user_id}, notification_id={notification_id}")

    return notification
