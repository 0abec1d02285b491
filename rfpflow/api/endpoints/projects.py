from typing import Any, List, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.database import get_db
from ...core.permissions import Action, authorize
from ...models.user import User
from ...models.project import ProjectStage, ProjectPriority, PriorityBanding
from ...schemas.project import (
    Project as ProjectResponse, ProjectDetail, ProjectCreate, ProjectUpdate, ProjectList,
    ProjectStageUpdate, StageChangeResult, ProgressUpdate, ProjectProgress, ProjectAssign,
    ProjectTagsUpdate, KanbanBoard,
)
from ...schemas.subtask import Subtask as SubtaskResponse, SubtaskCreate, SubtaskStats
from ...schemas.custom_attribute import AttributeValue, AttributeValuesUpdate
from ...schemas.activity import ActivityEntry
from ...services import (
    project_service, subtask_service, comment_service, custom_attribute_service, report_service,
    activity_service,
)
from ..deps import get_current_user

router = APIRouter()


@router.get("", response_model=ProjectList)
async def list_projects(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stage: Optional[List[ProjectStage]] = Query(None),
    priority: Optional[List[ProjectPriority]] = Query(None),
    priority_banding: Optional[List[PriorityBanding]] = Query(None),
    owner_id: Optional[List[str]] = Query(None),
    tag_ids: Optional[List[str]] = Query(None),
    due_date_from: Optional[datetime] = Query(None),
    due_date_to: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    include_archived: bool = Query(False),
    sort_by: str = Query(project_service.DEFAULT_SORT, pattern="^(title|created_at|updated_at|due_date|priority_banding|progress_percentage)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> Any:
    """List the organization's projects with filters, sorting and paging"""
    projects, total = await project_service.list_projects(
        db,
        current_user.organization_id,
        stages=stage,
        priorities=priority,
        priority_bandings=[b.value for b in priority_banding] if priority_banding else None,
        owner_ids=owner_id,
        tag_ids=tag_ids,
        due_date_from=due_date_from,
        due_date_to=due_date_to,
        search=search,
        include_archived=include_archived,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return {"projects": projects, "total": total, "limit": limit, "offset": offset}


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Create a project owned by the caller"""
    return await project_service.create_project(db, current_user, project_data, request=request)


@router.get("/kanban", response_model=KanbanBoard)
async def get_kanban_board(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    include_archived: bool = Query(False),
) -> Any:
    """Projects grouped by stage, in board column order"""
    columns = await project_service.projects_by_stage(db, current_user.organization_id, include_archived)
    return {"columns": columns, "total": sum(c["count"] for c in columns)}


@router.post("/update-stage", response_model=StageChangeResult)
async def update_project_stage(
    stage_data: ProjectStageUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Move a project to another stage (e.g. a Kanban drag and drop)"""
    project = await project_service.get_project(db, stage_data.project_id, current_user.organization_id)
    project, changed = await project_service.change_stage(db, project, stage_data.new_stage, current_user, request=request)
    return {"changed": changed, "project": project}


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Get project with owner, tags and counts"""
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    counts = await project_service.get_project_counts(db, project.id)
    return ProjectDetail.model_validate(project).model_copy(update=counts)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    project_data: ProjectUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await project_service.update_project(db, project, current_user, project_data, request=request)


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    await project_service.delete_project(db, project, current_user, request=request)
    return {"message": "Project deleted successfully"}


@router.post("/{project_id}/archive", response_model=ProjectResponse)
async def archive_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Hide a project from listings and the board; its stage is kept"""
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await project_service.set_archived(db, project, current_user, True)


@router.post("/{project_id}/unarchive", response_model=ProjectResponse)
async def unarchive_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await project_service.set_archived(db, project, current_user, False)


@router.post("/{project_id}/clone", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def clone_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await project_service.clone_project(db, project, current_user)


@router.get("/{project_id}/export")
async def export_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download a PDF summary of the project"""
    authorize(current_user, Action.PROJECT_EXPORT)
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    subtasks = await subtask_service.list_subtasks(db, project.id)
    comments = await comment_service.list_comments(db, project.id)

    report = report_service.render_project_report(project, subtasks, comments)
    return Response(
        content=report["content"],
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report["filename"]}"'},
    )


@router.get("/{project_id}/activity", response_model=List[ActivityEntry])
async def get_project_activity(
    project_id: str,
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Audit trail of the project, newest first"""
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await activity_service.get_entity_history(db, "project", project.id, limit=limit)


@router.get("/{project_id}/progress", response_model=ProjectProgress)
async def get_project_progress(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    history = await project_service.get_progress_history(db, project)
    return {
        "project_id": project.id,
        "progress_percentage": project.progress_percentage,
        "status_notes": project.status_notes,
        "history": history,
    }


@router.put("/{project_id}/progress", response_model=ProjectProgress)
async def update_project_progress(
    project_id: str,
    progress_data: ProgressUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    project = await project_service.update_progress(
        db, project, current_user, progress_data.progress_percentage, progress_data.status_notes
    )
    history = await project_service.get_progress_history(db, project)
    return {
        "project_id": project.id,
        "progress_percentage": project.progress_percentage,
        "status_notes": project.status_notes,
        "history": history,
    }


@router.put("/{project_id}/assign", response_model=ProjectResponse)
async def assign_project(
    project_id: str,
    assign_data: ProjectAssign,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await project_service.assign_project(db, project, current_user, assign_data.assigned_to)


@router.get("/{project_id}/subtasks", response_model=List[SubtaskResponse])
async def list_project_subtasks(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await subtask_service.list_subtasks(db, project.id)


@router.post("/{project_id}/subtasks", response_model=SubtaskResponse, status_code=status.HTTP_201_CREATED)
async def create_project_subtask(
    project_id: str,
    subtask_data: SubtaskCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await subtask_service.create_subtask(db, project, current_user, subtask_data)


@router.get("/{project_id}/subtasks/stats", response_model=SubtaskStats)
async def get_project_subtask_stats(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await subtask_service.subtask_stats(db, project.id)


@router.post("/{project_id}/tags", response_model=ProjectResponse)
async def add_project_tags(
    project_id: str,
    tags_data: ProjectTagsUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await project_service.add_tags(db, project, current_user, tags_data.tag_ids)


@router.delete("/{project_id}/tags", response_model=ProjectResponse)
async def remove_project_tags(
    project_id: str,
    tags_data: ProjectTagsUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await project_service.remove_tags(db, project, current_user, tags_data.tag_ids)


@router.get("/{project_id}/attributes", response_model=List[AttributeValue])
async def get_project_attributes(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await custom_attribute_service.get_project_values(db, project)


@router.put("/{project_id}/attributes", response_model=List[AttributeValue])
async def set_project_attributes(
    project_id: str,
    values_data: AttributeValuesUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await custom_attribute_service.set_project_values(db, project, current_user, values_data.values)
