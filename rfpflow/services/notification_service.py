"""Notification service: single write path for in-app notifications.

Every notification is committed and then pushed to the recipient's realtime
connections (best-effort).
"""
import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, update, func, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.notification import Notification, NotificationType
from . import realtime

logger = logging.getLogger(__name__)


async def create_notification(
    db: AsyncSession,
    *,
    user_id: str,
    organization_id: str,
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.SYSTEM,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    created_by: Optional[str] = None,
) -> Notification:
    notif = Notification(
        user_id=user_id,
        organization_id=organization_id,
        title=title,
        message=message,
        type=NotificationType(notification_type).value,
        entity_type=entity_type,
        entity_id=entity_id,
        created_by=created_by,
    )
    db.add(notif)
    await db.commit()

    await realtime.publish("notifications", realtime.EventType.INSERT, organization_id, notif, user_id=user_id)
    return notif


async def notify_safely(db: AsyncSession, **kwargs) -> Optional[Notification]:
    """Create a notification as a side effect of another write.

    Failures are logged and rolled back; the primary write has already been
    committed by the caller.
    """
    try:
        return await create_notification(db, **kwargs)
    except SQLAlchemyError:
        logger.exception(f"Failed to create notification for user {kwargs.get('user_id')}")
        await db.rollback()
        return None


async def list_notifications(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
    limit: int = 50,
    unread_only: bool = False,
) -> Tuple[List[Notification], int]:
    """Newest first, plus the user's unread count"""
    query = select(Notification).where(
        Notification.user_id == user_id,
        Notification.organization_id == organization_id,
    )
    if unread_only:
        query = query.where(Notification.is_read == False)  # noqa: E712
    query = query.order_by(desc(Notification.created_at)).limit(limit)
    result = await db.execute(query)
    notifications = list(result.scalars().all())

    unread_result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.organization_id == organization_id,
            Notification.is_read == False,  # noqa: E712
        )
    )
    return notifications, unread_result.scalar() or 0


async def mark_read(db: AsyncSession, notification_id: str, user_id: str) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notif = result.scalar_one_or_none()
    if not notif:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")

    if not notif.is_read:
        notif.is_read = True
        notif.read_at = utcnow()
        await db.commit()
        await realtime.publish("notifications", realtime.EventType.UPDATE, notif.organization_id, notif, user_id=user_id)
    return notif


async def mark_all_read(db: AsyncSession, user_id: str, organization_id: str) -> int:
    """Mark every unread notification of the user as read; returns how many changed"""
    result = await db.execute(
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.organization_id == organization_id,
            Notification.is_read == False,  # noqa: E712
        )
        .values(is_read=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0
