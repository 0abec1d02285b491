from typing import Any, List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.database import get_db
from ...models.user import User
from ...schemas.comment import Comment as CommentResponse, CommentCreate, CommentUpdate, CommentStats
from ...services import project_service, comment_service
from ..deps import get_current_user

router = APIRouter()


@router.get("", response_model=List[CommentResponse])
async def list_comments(
    project_id: str = Query(..., alias="projectId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Comments on a project, oldest first"""
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await comment_service.list_comments(db, project.id)


@router.get("/stats", response_model=CommentStats)
async def get_comment_stats(
    project_id: str = Query(..., alias="projectId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, project_id, current_user.organization_id)
    return await comment_service.comment_stats(db, project.id)


@router.get("/search", response_model=List[CommentResponse])
async def search_comments(
    q: str = Query(..., min_length=1, max_length=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await comment_service.search_comments(db, current_user.organization_id, q)


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    project = await project_service.get_project(db, comment_data.project_id, current_user.organization_id)
    return await comment_service.create_comment(db, project, current_user, comment_data.content, comment_data.parent_id)


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: str,
    comment_data: CommentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    comment = await comment_service.get_comment(db, comment_id, current_user.organization_id)
    return await comment_service.update_comment(db, comment, current_user, comment_data.content, current_user.organization_id)


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    comment = await comment_service.get_comment(db, comment_id, current_user.organization_id)
    await comment_service.delete_comment(db, comment, current_user, current_user.organization_id)
    return {"message": "Comment deleted successfully"}
