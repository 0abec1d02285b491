import logging
from datetime import timedelta
from typing import Any, Dict, List

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.permissions import Action, authorize
from ..models.base import utcnow
from ..models.notification import NotificationType
from ..models.project import Project
from ..models.subtask import Subtask
from ..models.user import User
from ..schemas.subtask import SubtaskBase, SubtaskUpdate
from . import activity_service, notification_service, realtime

logger = logging.getLogger(__name__)


async def _load_subtask(db: AsyncSession, subtask_id: str) -> Subtask:
    result = await db.execute(
        select(Subtask).where(Subtask.id == subtask_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _ensure_assignee(db: AsyncSession, user_id: str, organization_id: str) -> None:
    result = await db.execute(
        select(User.id).where(User.id == user_id, User.organization_id == organization_id, User.is_active == True)  # noqa: E712
    )
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Assignee is not an active member of this organization")


async def get_subtask(db: AsyncSession, subtask_id: str, organization_id: str) -> Subtask:
    """Subtask whose project belongs to the organization, or 404"""
    result = await db.execute(
        select(Subtask)
        .join(Project, Project.id == Subtask.project_id)
        .where(Subtask.id == subtask_id, Project.organization_id == organization_id)
    )
    subtask = result.scalar_one_or_none()
    if not subtask:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subtask not found")
    return subtask


async def list_subtasks(db: AsyncSession, project_id: str) -> List[Subtask]:
    result = await db.execute(
        select(Subtask).where(Subtask.project_id == project_id).order_by(Subtask.created_at, Subtask.id)
    )
    return list(result.scalars().all())


async def create_subtask(db: AsyncSession, project: Project, actor: User, data: SubtaskBase) -> Subtask:
    authorize(actor, Action.SUBTASK_MANAGE, project.owner_id)
    if data.assigned_to:
        await _ensure_assignee(db, data.assigned_to, project.organization_id)

    subtask = Subtask(
        project_id=project.id,
        title=data.title,
        description=data.description,
        assigned_to=data.assigned_to,
        due_date=data.due_date,
        estimated_hours=data.estimated_hours,
        actual_hours=data.actual_hours,
        priority=data.priority,
        created_by=actor.id,
        completed=False,
    )
    db.add(subtask)
    await db.flush()

    activity_service.log_activity(
        db,
        organization_id=project.organization_id,
        user_id=actor.id,
        action="subtask_created",
        entity_type="subtask",
        entity_id=subtask.id,
        new_values={"project_id": project.id, "title": subtask.title, "assigned_to": subtask.assigned_to},
    )
    await db.commit()

    if subtask.assigned_to and subtask.assigned_to != actor.id:
        await notification_service.notify_safely(
            db,
            user_id=subtask.assigned_to,
            organization_id=project.organization_id,
            title="New subtask assigned",
            message=f'You have been assigned "{subtask.title}" on "{project.title}"',
            notification_type=NotificationType.ASSIGNMENT,
            entity_type="subtask",
            entity_id=subtask.id,
            created_by=actor.id,
        )

    subtask = await _load_subtask(db, subtask.id)
    await realtime.publish("subtasks", realtime.EventType.INSERT, project.organization_id, subtask)
    return subtask


def _apply_completion(subtask: Subtask, completed: bool, actor: User) -> None:
    subtask.completed = completed
    if completed:
        subtask.completed_at = utcnow()
        subtask.completed_by = actor.id
    else:
        subtask.completed_at = None
        subtask.completed_by = None


async def update_subtask(db: AsyncSession, subtask: Subtask, project: Project, actor: User, data: SubtaskUpdate) -> Subtask:
    authorize(actor, Action.SUBTASK_MANAGE, project.owner_id)

    changes = data.model_dump(exclude_unset=True)
    if changes.get("assigned_to"):
        await _ensure_assignee(db, changes["assigned_to"], project.organization_id)

    old_record = realtime.to_record(subtask)
    completed = changes.pop("completed", None)
    for field, value in changes.items():
        setattr(subtask, field, value)
    if completed is not None and completed != subtask.completed:
        _apply_completion(subtask, completed, actor)

    activity_service.log_activity(
        db,
        organization_id=project.organization_id,
        user_id=actor.id,
        action="subtask_updated",
        entity_type="subtask",
        entity_id=subtask.id,
        new_values=data.model_dump(exclude_unset=True),
    )
    await db.commit()

    subtask = await _load_subtask(db, subtask.id)
    await realtime.publish("subtasks", realtime.EventType.UPDATE, project.organization_id, subtask, old_record=old_record)
    return subtask


async def toggle_subtask(db: AsyncSession, subtask: Subtask, project: Project, actor: User) -> Subtask:
    """Flip completion; the project owner, staff and the assignee may do this"""
    authorize(actor, Action.SUBTASK_TOGGLE, project.owner_id, subtask.assigned_to)

    old_record = realtime.to_record(subtask)
    _apply_completion(subtask, not subtask.completed, actor)
    activity_service.log_activity(
        db,
        organization_id=project.organization_id,
        user_id=actor.id,
        action="subtask_completed" if subtask.completed else "subtask_reopened",
        entity_type="subtask",
        entity_id=subtask.id,
        old_values={"completed": not subtask.completed},
        new_values={"completed": subtask.completed},
    )
    await db.commit()

    subtask = await _load_subtask(db, subtask.id)
    await realtime.publish("subtasks", realtime.EventType.UPDATE, project.organization_id, subtask, old_record=old_record)
    return subtask


async def delete_subtask(db: AsyncSession, subtask: Subtask, project: Project, actor: User) -> None:
    authorize(actor, Action.SUBTASK_MANAGE, project.owner_id)

    old_record = realtime.to_record(subtask)
    activity_service.log_activity(
        db,
        organization_id=project.organization_id,
        user_id=actor.id,
        action="subtask_deleted",
        entity_type="subtask",
        entity_id=subtask.id,
        old_values={"project_id": project.id, "title": subtask.title},
    )
    await db.delete(subtask)
    await db.commit()

    await realtime.publish("subtasks", realtime.EventType.DELETE, project.organization_id, None, old_record=old_record)


async def subtask_stats(db: AsyncSession, project_id: str) -> Dict[str, Any]:
    now = utcnow()
    total = await db.execute(select(func.count(Subtask.id)).where(Subtask.project_id == project_id))
    completed = await db.execute(
        select(func.count(Subtask.id)).where(Subtask.project_id == project_id, Subtask.completed == True)  # noqa: E712
    )
    overdue = await db.execute(
        select(func.count(Subtask.id)).where(
            Subtask.project_id == project_id,
            Subtask.completed == False,  # noqa: E712
            Subtask.due_date < now,
        )
    )
    total_count = total.scalar() or 0
    completed_count = completed.scalar() or 0
    return {
        "total": total_count,
        "completed": completed_count,
        "overdue": overdue.scalar() or 0,
        "completion_percentage": round(completed_count * 100 / total_count) if total_count else 0,
    }


async def overdue_subtasks(db: AsyncSession, organization_id: str) -> List[Subtask]:
    result = await db.execute(
        select(Subtask)
        .join(Project, Project.id == Subtask.project_id)
        .where(
            Project.organization_id == organization_id,
            Subtask.completed == False,  # noqa: E712
            Subtask.due_date < utcnow(),
        )
        .order_by(Subtask.due_date)
    )
    return list(result.scalars().all())


async def due_soon_subtasks(db: AsyncSession, organization_id: str, days: int = 3) -> List[Subtask]:
    now = utcnow()
    result = await db.execute(
        select(Subtask)
        .join(Project, Project.id == Subtask.project_id)
        .where(
            Project.organization_id == organization_id,
            Subtask.completed == False,  # noqa: E712
            Subtask.due_date >= now,
            Subtask.due_date <= now + timedelta(days=days),
        )
        .order_by(Subtask.due_date)
    )
    return list(result.scalars().all())
