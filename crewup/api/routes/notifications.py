from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from crewup.core.auth_dependency import get_current_profile
from crewup.core.errors import NotFoundError
from crewup.db.models.profile import Profile
from crewup.db.session import get_db
from crewup.schemas.alerts import NotificationResponse
from crewup.services.notification_service import list_notifications, mark_notification_read

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
def get_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    return list_notifications(db, profile.id, unread_only=unread_only, limit=limit)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def read_notification(
    notification_id: str,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    try:
        return mark_notification_read(db, profile.id, notification_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
