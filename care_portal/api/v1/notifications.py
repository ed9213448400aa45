from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_current_user
from ...services.notification_service import NotificationService
from ...schemas.notification import NotificationResponse
from ...models.user import User

router = APIRouter(prefix="/notifications", tags=["Notifications"])

@router.get("/{user_id}", response_model=List[NotificationResponse])
async def list_notifications(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Notifications for an account, newest first."""
    notifications = NotificationService(db).list_for_user(current_user, user_id)
    return [NotificationResponse.model_validate(n) for n in notifications]

@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = NotificationService(db).mark_read(current_user, notification_id)
    return NotificationResponse.model_validate(notification)
