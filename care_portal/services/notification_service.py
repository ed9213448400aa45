from sqlalchemy.orm import Session
from typing import List
import logging

from ..core.exceptions import NotFound
from ..core.permissions import ensure_self_or_admin
from ..models.notification import Notification
from ..models.user import User

logger = logging.getLogger(__name__)

class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def notify(self, user_id: int, title: str, message: str) -> Notification:
        """Queue a notification on the current session; the caller commits."""
        notification = Notification(user_id=user_id, title=title, message=message, read=False)
        self.db.add(notification)
        return notification

    def list_for_user(self, actor: User, user_id: int) -> List[Notification]:
        """Notifications for one account, newest first."""
        ensure_self_or_admin(actor, user_id)
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .all()
        )

    def mark_read(self, actor: User, notification_id: int) -> Notification:
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id
        ).first()
        if not notification:
            raise NotFound("Notification not found")

        ensure_self_or_admin(actor, notification.user_id)

        if not notification.read:
            notification.read = True
            self.db.commit()
            self.db.refresh(notification)
            logger.info(f"Notification {notification.id} marked read")

        return notification
