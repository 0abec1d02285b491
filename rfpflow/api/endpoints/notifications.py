from typing import Any
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.database import get_db
from ...core.permissions import Action
from ...models.user import User
from ...schemas.notification import Notification as NotificationResponse, NotificationCreate, NotificationList
from ...services import notification_service, user_service
from ..deps import get_current_user, require_action

router = APIRouter()


@router.get("", response_model=NotificationList)
async def get_notifications(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    limit: int = Query(50, ge=1, le=200),
    unread_only: bool = Query(False),
) -> Any:
    """Get the caller's notifications, newest first"""
    notifications, unread_count = await notification_service.list_notifications(
        db, current_user.id, current_user.organization_id, limit=limit, unread_only=unread_only
    )
    return {"notifications": notifications, "unread_count": unread_count}


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def send_notification(
    notification_data: NotificationCreate,
    current_user: User = Depends(require_action(Action.NOTIFICATION_SEND)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Send a notification to a member of the caller's organization"""
    recipient = await user_service.get_user(db, notification_data.user_id, current_user.organization_id)
    return await notification_service.create_notification(
        db,
        user_id=recipient.id,
        organization_id=current_user.organization_id,
        title=notification_data.title,
        message=notification_data.message,
        notification_type=notification_data.type,
        entity_type=notification_data.entity_type,
        entity_id=notification_data.entity_id,
        created_by=current_user.id,
    )


@router.put("/mark-all-read")
async def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    updated = await notification_service.mark_all_read(db, current_user.id, current_user.organization_id)
    return {"message": "All notifications marked as read", "updated": updated}


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Mark notification as read"""
    return await notification_service.mark_read(db, notification_id, current_user.id)
