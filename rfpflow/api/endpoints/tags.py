from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.database import get_db
from ...models.user import User
from ...schemas.tag import Tag as TagResponse, TagCreate, TagUpdate, TagUsage
from ...services import tag_service
from ..deps import get_current_user

router = APIRouter()


@router.get("", response_model=List[TagResponse])
async def list_tags(
    search: Optional[str] = Query(None, max_length=50),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    if search:
        return await tag_service.search_tags(db, current_user.organization_id, search)
    return await tag_service.list_tags(db, current_user.organization_id)


@router.get("/stats", response_model=List[TagUsage])
async def get_tag_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Tags with the number of projects using each"""
    return await tag_service.tag_usage_stats(db, current_user.organization_id)


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    tag_data: TagCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await tag_service.create_tag(db, current_user, tag_data.name, tag_data.color)


@router.put("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: str,
    tag_data: TagUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    tag = await tag_service.get_tag(db, tag_id, current_user.organization_id)
    return await tag_service.update_tag(db, tag, current_user, tag_data.name, tag_data.color)


@router.delete("/{tag_id}")
async def delete_tag(
    tag_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    tag = await tag_service.get_tag(db, tag_id, current_user.organization_id)
    await tag_service.delete_tag(db, tag, current_user)
    return {"message": "Tag deleted successfully"}
