"""
Project (RFP) service: listing, Kanban board, stage lifecycle, progress,
assignment, archive, clone, delete and tagging.

Every mutation is authorized against the central policy table, records an
activity row, commits, then notifies and broadcasts on a best-effort basis.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import HTTPException, Request, status
from sqlalchemy import select, func, or_, asc, desc
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.permissions import Action, authorize
from ..models.comment import Comment
from ..models.notification import NotificationType
from ..models.project import (
    Project, ProjectStage, ProjectPriority, STAGE_METADATA, KANBAN_COLUMNS, project_tags,
)
from ..models.subtask import Subtask
from ..models.tag import Tag
from ..models.user import User
from ..schemas.project import ProjectCreate, ProjectUpdate
from . import activity_service, notification_service, realtime

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "title": Project.title,
    "created_at": Project.created_at,
    "updated_at": Project.updated_at,
    "due_date": Project.due_date,
    "priority_banding": Project.priority_banding,
    "progress_percentage": Project.progress_percentage,
}
DEFAULT_SORT = "updated_at"
PROGRESS_HISTORY_LIMIT = 10
CLONE_SUFFIX = " (Copy)"
TITLE_MAX_LENGTH = 200

# Fields copied verbatim when a project is cloned
CLONED_FIELDS = (
    "description", "priority", "due_date", "status_notes", "estimated_hours", "budget_amount",
    "client_name", "client_email", "rfp_document_url", "rfp_added_date", "rfp_title", "state",
    "portal_url", "folder_url", "priority_banding", "company_assignment",
)


def _stage_value(stage) -> str:
    return stage.value if isinstance(stage, ProjectStage) else str(stage)


async def get_project(db: AsyncSession, project_id: str, organization_id: str) -> Project:
    """Load a project of the organization with owner, assignee and tags, or 404"""
    result = await db.execute(
        select(Project)
        .where(Project.id == project_id, Project.organization_id == organization_id)
        .execution_options(populate_existing=True)
    )
    project = result.scalar_one_or_none()
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


async def get_project_counts(db: AsyncSession, project_id: str) -> Dict[str, int]:
    comments = await db.execute(select(func.count(Comment.id)).where(Comment.project_id == project_id))
    subtasks = await db.execute(select(func.count(Subtask.id)).where(Subtask.project_id == project_id))
    completed = await db.execute(
        select(func.count(Subtask.id)).where(Subtask.project_id == project_id, Subtask.completed == True)  # noqa: E712
    )
    return {
        "comments_count": comments.scalar() or 0,
        "subtasks_count": subtasks.scalar() or 0,
        "completed_subtasks_count": completed.scalar() or 0,
    }


async def _get_org_member(db: AsyncSession, user_id: str, organization_id: str) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id, User.organization_id == organization_id)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot assign a deactivated user")
    return user


async def _get_org_tags(db: AsyncSession, tag_ids: Sequence[str], organization_id: str) -> List[Tag]:
    if not tag_ids:
        return []
    unique_ids = set(tag_ids)
    result = await db.execute(
        select(Tag).where(Tag.id.in_(unique_ids), Tag.organization_id == organization_id)
    )
    tags = list(result.scalars().all())
    if len(tags) != len(unique_ids):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    return tags


async def list_projects(
    db: AsyncSession,
    organization_id: str,
    *,
    stages: Optional[List[ProjectStage]] = None,
    priorities: Optional[List[ProjectPriority]] = None,
    priority_bandings: Optional[List[str]] = None,
    owner_ids: Optional[List[str]] = None,
    tag_ids: Optional[List[str]] = None,
    due_date_from=None,
    due_date_to=None,
    search: Optional[str] = None,
    include_archived: bool = False,
    sort_by: str = DEFAULT_SORT,
    sort_order: str = "desc",
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[Project], int]:
    query = select(Project).where(Project.organization_id == organization_id)

    if not include_archived:
        query = query.where(Project.is_archived == False)  # noqa: E712
    if stages:
        query = query.where(Project.stage.in_(stages))
    if priorities:
        query = query.where(Project.priority.in_(priorities))
    if priority_bandings:
        query = query.where(Project.priority_banding.in_(priority_bandings))
    if owner_ids:
        query = query.where(Project.owner_id.in_(owner_ids))
    if tag_ids:
        query = query.where(
            Project.id.in_(select(project_tags.c.project_id).where(project_tags.c.tag_id.in_(tag_ids)))
        )
    if due_date_from:
        query = query.where(Project.due_date >= due_date_from)
    if due_date_to:
        query = query.where(Project.due_date <= due_date_to)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                Project.title.ilike(pattern),
                Project.description.ilike(pattern),
                Project.client_name.ilike(pattern),
                Project.rfp_title.ilike(pattern),
            )
        )

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    column = SORT_FIELDS.get(sort_by, SORT_FIELDS[DEFAULT_SORT])
    direction = asc if sort_order == "asc" else desc
    query = query.order_by(direction(column), Project.id).offset(offset).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all()), total


async def projects_by_stage(db: AsyncSession, organization_id: str, include_archived: bool = False) -> List[Dict[str, Any]]:
    """Projects grouped into Kanban columns, in board order"""
    query = select(Project).where(Project.organization_id == organization_id)
    if not include_archived:
        query = query.where(Project.is_archived == False)  # noqa: E712
    result = await db.execute(query.order_by(desc(Project.updated_at)))

    grouped: Dict[ProjectStage, List[Project]] = {stage: [] for stage in KANBAN_COLUMNS}
    for project in result.scalars().all():
        grouped[ProjectStage(project.stage)].append(project)

    return [
        {
            "stage": stage,
            **STAGE_METADATA[stage],
            "projects": grouped[stage],
            "count": len(grouped[stage]),
        }
        for stage in KANBAN_COLUMNS
    ]


async def create_project(db: AsyncSession, user: User, data: ProjectCreate, request: Optional[Request] = None) -> Project:
    authorize(user, Action.PROJECT_CREATE)

    payload = data.model_dump(exclude={"tag_ids", "stage", "assigned_to"})
    if payload.get("client_email"):
        payload["client_email"] = str(payload["client_email"])
    if payload.get("priority_banding"):
        payload["priority_banding"] = data.priority_banding.value

    if data.assigned_to:
        await _get_org_member(db, data.assigned_to, user.organization_id)
    tags = await _get_org_tags(db, data.tag_ids, user.organization_id)

    project = Project(
        **payload,
        organization_id=user.organization_id,
        owner_id=user.id,
        # The creator owns the project, so it starts out assigned
        stage=data.stage or ProjectStage.ASSIGNED,
        assigned_to=data.assigned_to,
        progress_percentage=0,
        is_archived=False,
        tags=tags,
    )
    db.add(project)
    await db.flush()

    activity_service.log_activity(
        db,
        organization_id=user.organization_id,
        user_id=user.id,
        action="project_created",
        entity_type="project",
        entity_id=project.id,
        new_values={"title": project.title, "stage": _stage_value(project.stage)},
        request=request,
    )
    await db.commit()
    logger.info(f"Project {project.id} created by {user.id}")

    if data.assigned_to and data.assigned_to != user.id:
        await notification_service.notify_safely(
            db,
            user_id=data.assigned_to,
            organization_id=user.organization_id,
            title="New project assigned",
            message=f'You have been assigned to "{project.title}"',
            notification_type=NotificationType.ASSIGNMENT,
            entity_type="project",
            entity_id=project.id,
            created_by=user.id,
        )

    project = await get_project(db, project.id, user.organization_id)
    await realtime.publish("projects", realtime.EventType.INSERT, user.organization_id, project)
    return project


async def update_project(db: AsyncSession, project: Project, user: User, data: ProjectUpdate,
                         request: Optional[Request] = None) -> Project:
    authorize(user, Action.PROJECT_UPDATE, project.owner_id)

    changes = data.model_dump(exclude_unset=True)
    new_stage = changes.pop("stage", None)
    if changes.get("client_email"):
        changes["client_email"] = str(changes["client_email"])
    if changes.get("priority_banding"):
        changes["priority_banding"] = data.priority_banding.value

    old_record = realtime.to_record(project)
    old_values: Dict[str, Any] = {}
    new_values: Dict[str, Any] = {}
    for field, value in changes.items():
        if getattr(project, field) != value:
            old_values[field] = getattr(project, field)
            new_values[field] = value
            setattr(project, field, value)

    if new_values:
        activity_service.log_activity(
            db,
            organization_id=project.organization_id,
            user_id=user.id,
            action="project_updated",
            entity_type="project",
            entity_id=project.id,
            old_values=old_values,
            new_values=new_values,
            request=request,
        )
        await db.commit()
        await realtime.publish("projects", realtime.EventType.UPDATE, project.organization_id, project, old_record=old_record)

    if new_stage is not None:
        project, _ = await change_stage(db, project, new_stage, user, request=request)

    return await get_project(db, project.id, project.organization_id)


async def change_stage(db: AsyncSession, project: Project, new_stage: ProjectStage, actor: User,
                       request: Optional[Request] = None) -> Tuple[Project, bool]:
    """Move a project to any stage.

    Returns the project and whether anything changed. Setting the current
    stage again writes nothing, logs nothing and notifies nobody.
    """
    authorize(actor, Action.PROJECT_UPDATE_STAGE, project.owner_id)

    new_stage = ProjectStage(new_stage)
    old_stage = ProjectStage(project.stage)
    if new_stage == old_stage:
        return project, False

    old_record = realtime.to_record(project)
    project.stage = new_stage
    activity_service.log_activity(
        db,
        organization_id=project.organization_id,
        user_id=actor.id,
        action="stage_changed",
        entity_type="project",
        entity_id=project.id,
        old_values={"stage": old_stage.value},
        new_values={"stage": new_stage.value},
        request=request,
    )
    await db.commit()
    logger.info(f"Project {project.id} stage {old_stage.value} -> {new_stage.value} by {actor.id}")

    if project.owner_id != actor.id:
        await notification_service.notify_safely(
            db,
            user_id=project.owner_id,
            organization_id=project.organization_id,
            title="Project stage updated",
            message=f'"{project.title}" moved from {STAGE_METADATA[old_stage]["label"]} to {STAGE_METADATA[new_stage]["label"]}',
            notification_type=NotificationType.STAGE_CHANGED,
            entity_type="project",
            entity_id=project.id,
            created_by=actor.id,
        )

    project = await get_project(db, project.id, project.organization_id)
    await realtime.publish("projects", realtime.EventType.UPDATE, project.organization_id, project, old_record=old_record)
    return project, True


async def update_progress(db: AsyncSession, project: Project, actor: User, progress_percentage: int,
                          status_notes: Optional[str] = None) -> Project:
    authorize(actor, Action.PROJECT_UPDATE_PROGRESS, project.owner_id)

    old_record = realtime.to_record(project)
    previous = project.progress_percentage
    project.progress_percentage = progress_percentage
    if status_notes is not None:
        project.status_notes = status_notes

    activity_service.log_activity(
        db,
        organization_id=project.organization_id,
        user_id=actor.id,
        action="progress_updated",
        entity_type="project",
        entity_id=project.id,
        old_values={"progress_percentage": previous},
        new_values={"progress_percentage": progress_percentage, "status_notes": status_notes},
    )
    await db.commit()

    if project.owner_id != actor.id:
        await notification_service.notify_safely(
            db,
            user_id=project.owner_id,
            organization_id=project.organization_id,
            title="Project progress updated",
            message=f'"{project.title}" is now {progress_percentage}% complete',
            notification_type=NotificationType.PROGRESS_UPDATED,
            entity_type="project",
            entity_id=project.id,
            created_by=actor.id,
        )

    project = await get_project(db, project.id, project.organization_id)
    await realtime.publish("projects", realtime.EventType.UPDATE, project.organization_id, project, old_record=old_record)
    return project


async def get_progress_history(db: AsyncSession, project: Project) -> List[Dict[str, Any]]:
    """Most recent progress updates, newest first"""
    entries = await activity_service.get_entity_history(
        db, "project", project.id, action="progress_updated", limit=PROGRESS_HISTORY_LIMIT
    )
    return [
        {
            "progress_percentage": (entry.new_values or {}).get("progress_percentage"),
            "previous_percentage": (entry.old_values or {}).get("progress_percentage"),
            "status_notes": (entry.new_values or {}).get("status_notes"),
            "user_id": entry.user_id,
            "created_at": entry.created_at,
        }
        for entry in entries
    ]


async def assign_project(db: AsyncSession, project: Project, actor: User, assignee_id: str) -> Project:
    authorize(actor, Action.PROJECT_UPDATE, project.owner_id)
    await _get_org_member(db, assignee_id, project.organization_id)

    old_record = realtime.to_record(project)
    old_values = {"assigned_to": project.assigned_to, "stage": _stage_value(project.stage)}
    project.assigned_to = assignee_id
    if ProjectStage(project.stage) == ProjectStage.UNASSIGNED:
        project.stage = ProjectStage.ASSIGNED

    activity_service.log_activity(
        db,
        organization_id=project.organization_id,
        user_id=actor.id,
        action="project_assigned",
        entity_type="project",
        entity_id=project.id,
        old_values=old_values,
        new_values={"assigned_to": assignee_id, "stage": _stage_value(project.stage)},
    )
    await db.commit()

    if assignee_id != actor.id:
        await notification_service.notify_safely(
            db,
            user_id=assignee_id,
            organization_id=project.organization_id,
            title="New project assigned",
            message=f'You have been assigned to "{project.title}"',
            notification_type=NotificationType.ASSIGNMENT,
            entity_type="project",
            entity_id=project.id,
            created_by=actor.id,
        )

    project = await get_project(db, project.id, project.organization_id)
    await realtime.publish("projects", realtime.EventType.UPDATE, project.organization_id, project, old_record=old_record)
    return project


async def set_archived(db: AsyncSession, project: Project, actor: User, archived: bool = True) -> Project:
    """Archive or restore a project; the stage is left untouched"""
    authorize(actor, Action.PROJECT_ARCHIVE, project.owner_id)
    if project.is_archived == archived:
        return project

    old_record = realtime.to_record(project)
    project.is_archived = archived
    activity_service.log_activity(
        db,
        organization_id=project.organization_id,
        user_id=actor.id,
        action="project_archived" if archived else "project_unarchived",
        entity_type="project",
        entity_id=project.id,
        old_values={"is_archived": not archived},
        new_values={"is_archived": archived},
    )
    await db.commit()

    project = await get_project(db, project.id, project.organization_id)
    await realtime.publish("projects", realtime.EventType.UPDATE, project.organization_id, project, old_record=old_record)
    return project


async def clone_project(db: AsyncSession, project: Project, actor: User) -> Project:
    """Copy a project; the caller owns the copy, which starts unassigned at 0%"""
    authorize(actor, Action.PROJECT_CLONE, project.owner_id)

    title = project.title
    if len(title) + len(CLONE_SUFFIX) > TITLE_MAX_LENGTH:
        title = title[:TITLE_MAX_LENGTH - len(CLONE_SUFFIX)]

    clone = Project(
        organization_id=project.organization_id,
        title=f"{title}{CLONE_SUFFIX}",
        owner_id=actor.id,
        stage=ProjectStage.UNASSIGNED,
        progress_percentage=0,
        is_archived=False,
        tags=list(project.tags),
        **{field: getattr(project, field) for field in CLONED_FIELDS},
    )
    db.add(clone)
    await db.flush()

    activity_service.log_activity(
        db,
        organization_id=project.organization_id,
        user_id=actor.id,
        action="project_cloned",
        entity_type="project",
        entity_id=clone.id,
        new_values={"source_project_id": project.id, "title": clone.title},
    )
    await db.commit()

    clone = await get_project(db, clone.id, clone.organization_id)
    await realtime.publish("projects", realtime.EventType.INSERT, clone.organization_id, clone)
    return clone


async def delete_project(db: AsyncSession, project: Project, actor: User, request: Optional[Request] = None) -> None:
    authorize(actor, Action.PROJECT_DELETE, project.owner_id)

    old_record = realtime.to_record(project)
    activity_service.log_activity(
        db,
        organization_id=project.organization_id,
        user_id=actor.id,
        action="project_deleted",
        entity_type="project",
        entity_id=project.id,
        old_values={"title": project.title, "stage": _stage_value(project.stage)},
        request=request,
    )
    await db.delete(project)
    await db.commit()
    logger.info(f"Project {old_record['id']} deleted by {actor.id}")

    await realtime.publish("projects", realtime.EventType.DELETE, actor.organization_id, None, old_record=old_record)


async def add_tags(db: AsyncSession, project: Project, actor: User, tag_ids: Sequence[str]) -> Project:
    authorize(actor, Action.PROJECT_UPDATE, project.owner_id)
    tags = await _get_org_tags(db, tag_ids, project.organization_id)

    existing = {tag.id for tag in project.tags}
    added = [tag for tag in tags if tag.id not in existing]
    if added:
        project.tags.extend(added)
        await db.commit()
        await realtime.publish("projects", realtime.EventType.UPDATE, project.organization_id, project)
    return await get_project(db, project.id, project.organization_id)


async def remove_tags(db: AsyncSession, project: Project, actor: User, tag_ids: Sequence[str]) -> Project:
    authorize(actor, Action.PROJECT_UPDATE, project.owner_id)

    remove = set(tag_ids)
    kept = [tag for tag in project.tags if tag.id not in remove]
    if len(kept) != len(project.tags):
        project.tags = kept
        await db.commit()
        await realtime.publish("projects", realtime.EventType.UPDATE, project.organization_id, project)
    return await get_project(db, project.id, project.organization_id)
