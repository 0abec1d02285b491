from typing import Any, List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.database import get_db
from ...models.user import User
from ...schemas.subtask import Subtask as SubtaskResponse, SubtaskCreateForProject, SubtaskUpdate
from ...services import project_service, subtask_service
from ..deps import get_current_user

router = APIRouter()


@router.get("/overdue", response_model=List[SubtaskResponse])
async def list_overdue_subtasks(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Open subtasks past their due date, across the organization"""
    return await subtask_service.overdue_subtasks(db, current_user.organization_id)


@router.get("/due-soon", response_model=List[SubtaskResponse])
async def list_due_soon_subtasks(
    days: int = Query(3, ge=1, le=30),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await subtask_service.due_soon_subtasks(db, current_user.organization_id, days)


@router.post("", response_model=SubtaskResponse, status_code=status.HTTP_201_CREATED)
async def create_subtask(
    subtask_data: SubtaskCreateForProject,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, subtask_data.project_id, current_user.organization_id)
    return await subtask_service.create_subtask(db, project, current_user, subtask_data)


@router.patch("/{subtask_id}", response_model=SubtaskResponse)
async def update_subtask(
    subtask_id: str,
    subtask_data: SubtaskUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    subtask = await subtask_service.get_subtask(db, subtask_id, current_user.organization_id)
    project = await project_service.get_project(db, subtask.project_id, current_user.organization_id)
    return await subtask_service.update_subtask(db, subtask, project, current_user, subtask_data)


@router.patch("/{subtask_id}/toggle", response_model=SubtaskResponse)
async def toggle_subtask(
    subtask_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Flip the completion flag"""
    subtask = await subtask_service.get_subtask(db, subtask_id, current_user.organization_id)
    project = await project_service.get_project(db, subtask.project_id, current_user.organization_id)
    return await subtask_service.toggle_subtask(db, subtask, project, current_user)


@router.delete("/{subtask_id}")
async def delete_subtask(
    subtask_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    subtask = await subtask_service.get_subtask(db, subtask_id, current_user.organization_id)
    project = await project_service.get_project(db, subtask.project_id, current_user.organization_id)
    await subtask_service.delete_subtask(db, subtask, project, current_user)
    return {"message": "Subtask deleted successfully"}
