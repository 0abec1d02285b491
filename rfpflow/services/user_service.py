import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.permissions import Action, authorize, ensure_not_self
from ..models.notification import NotificationType
from ..models.user import User, UserRole, ROLE_LABELS
from ..schemas.user import ProfileUpdate
from . import activity_service, notification_service

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: Dict[str, Any] = {
    "email_notifications": True,
    "project_assignments": True,
    "due_date_reminders": True,
    "comment_mentions": True,
    "weekly_summary": False,
    "notification_frequency": "immediate",
    "quiet_hours_start": "22:00",
    "quiet_hours_end": "08:00",
}


async def list_users(db: AsyncSession, organization_id: str, include_inactive: bool = False,
                     role: Optional[UserRole] = None) -> List[User]:
    query = select(User).where(User.organization_id == organization_id)
    if not include_inactive:
        query = query.where(User.is_active == True)  # noqa: E712
    if role is not None:
        query = query.where(User.role == role)
    result = await db.execute(query.order_by(User.created_at, User.email))
    return list(result.scalars().all())


async def get_user(db: AsyncSession, user_id: str, organization_id: str) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id, User.organization_id == organization_id)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def update_profile(db: AsyncSession, user: User, data: ProfileUpdate) -> User:
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(user, field, value)
    if changes:
        activity_service.log_activity(
            db,
            organization_id=user.organization_id,
            user_id=user.id,
            action="profile_updated",
            entity_type="user",
            entity_id=user.id,
            new_values=changes,
        )
    await db.commit()
    return user


def get_preferences(user: User) -> Dict[str, Any]:
    """Stored preferences layered over the defaults"""
    return {**DEFAULT_PREFERENCES, **(user.preferences or {})}


async def update_preferences(db: AsyncSession, user: User, preferences: Dict[str, Any]) -> Dict[str, Any]:
    # Assign a new dict so the JSON column is flagged dirty
    user.preferences = {**DEFAULT_PREFERENCES, **preferences}
    await db.commit()
    return get_preferences(user)


async def change_role(db: AsyncSession, actor: User, target: User, role: UserRole) -> User:
    authorize(actor, Action.USER_CHANGE_ROLE)
    ensure_not_self(actor, Action.USER_CHANGE_ROLE, target.id, "Cannot change your own role")

    old_role = UserRole(target.role)
    if old_role == role:
        return target

    target.role = role
    activity_service.log_activity(
        db,
        organization_id=actor.organization_id,
        user_id=actor.id,
        action="role_changed",
        entity_type="user",
        entity_id=target.id,
        old_values={"role": old_role.value},
        new_values={"role": role.value},
    )
    await db.commit()
    logger.info(f"User {target.id} role {old_role.value} -> {role.value} by {actor.id}")

    await notification_service.notify_safely(
        db,
        user_id=target.id,
        organization_id=target.organization_id,
        title="Role updated",
        message=f"Your role has been changed from {ROLE_LABELS[old_role]} to {ROLE_LABELS[role]}",
        notification_type=NotificationType.ROLE_CHANGE,
        entity_type="user",
        entity_id=target.id,
        created_by=actor.id,
    )
    return target


async def set_active(db: AsyncSession, actor: User, target: User, active: bool) -> User:
    """Deactivate or reactivate an account"""
    action = Action.USER_REACTIVATE if active else Action.USER_DEACTIVATE
    authorize(actor, action)
    ensure_not_self(actor, action, target.id, "Cannot deactivate your own account")

    if target.is_active == active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already active" if active else "User is already deactivated"
        )

    target.is_active = active
    activity_service.log_activity(
        db,
        organization_id=actor.organization_id,
        user_id=actor.id,
        action="user_reactivated" if active else "user_deactivated",
        entity_type="user",
        entity_id=target.id,
        old_values={"is_active": not active},
        new_values={"is_active": active},
    )
    await db.commit()
    logger.info(f"User {target.id} {'reactivated' if active else 'deactivated'} by {actor.id}")

    await notification_service.notify_safely(
        db,
        user_id=target.id,
        organization_id=target.organization_id,
        title="Account reactivated" if active else "Account deactivated",
        message=(
            f"Your account has been reactivated by {actor.full_name}."
            if active else
            f"Your account has been deactivated by {actor.full_name}. Contact an administrator if you believe this is an error."
        ),
        notification_type=NotificationType.ACCOUNT_STATUS,
        entity_type="user",
        entity_id=target.id,
        created_by=actor.id,
    )
    return target
