import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.permissions import Action, authorize
from ..models.project import project_tags
from ..models.tag import Tag, DEFAULT_TAG_COLOR
from ..models.user import User

logger = logging.getLogger(__name__)


async def list_tags(db: AsyncSession, organization_id: str) -> List[Tag]:
    result = await db.execute(
        select(Tag).where(Tag.organization_id == organization_id).order_by(Tag.name)
    )
    return list(result.scalars().all())


async def get_tag(db: AsyncSession, tag_id: str, organization_id: str) -> Tag:
    result = await db.execute(
        select(Tag).where(Tag.id == tag_id, Tag.organization_id == organization_id)
    )
    tag = result.scalar_one_or_none()
    if not tag:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    return tag


async def find_by_name(db: AsyncSession, name: str, organization_id: str) -> Optional[Tag]:
    """Case-insensitive lookup within the organization"""
    result = await db.execute(
        select(Tag).where(
            Tag.organization_id == organization_id,
            func.lower(Tag.name) == name.strip().lower(),
        )
    )
    return result.scalar_one_or_none()


async def create_tag(db: AsyncSession, user: User, name: str, color: Optional[str] = None) -> Tag:
    authorize(user, Action.TAG_MANAGE)

    name = name.strip()
    if await find_by_name(db, name, user.organization_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tag with this name already exists")

    tag = Tag(
        organization_id=user.organization_id,
        name=name,
        color=color or DEFAULT_TAG_COLOR,
        created_by=user.id,
    )
    db.add(tag)
    await db.commit()
    return tag


async def update_tag(db: AsyncSession, tag: Tag, user: User, name: Optional[str] = None, color: Optional[str] = None) -> Tag:
    authorize(user, Action.TAG_MANAGE)

    if name is not None:
        name = name.strip()
        existing = await find_by_name(db, name, tag.organization_id)
        if existing and existing.id != tag.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tag with this name already exists")
        tag.name = name
    if color is not None:
        tag.color = color
    await db.commit()
    return tag


async def delete_tag(db: AsyncSession, tag: Tag, user: User) -> None:
    authorize(user, Action.TAG_MANAGE)
    await db.delete(tag)
    await db.commit()


async def search_tags(db: AsyncSession, organization_id: str, term: str, limit: int = 20) -> List[Tag]:
    result = await db.execute(
        select(Tag)
        .where(Tag.organization_id == organization_id, Tag.name.ilike(f"%{term.strip()}%"))
        .order_by(Tag.name)
        .limit(limit)
    )
    return list(result.scalars().all())


async def tag_usage_stats(db: AsyncSession, organization_id: str) -> List[Dict[str, Any]]:
    """Every tag of the organization with the number of projects using it, most used first"""
    usage = func.count(project_tags.c.project_id).label("usage_count")
    result = await db.execute(
        select(Tag, usage)
        .outerjoin(project_tags, project_tags.c.tag_id == Tag.id)
        .where(Tag.organization_id == organization_id)
        .group_by(Tag.id)
        .order_by(desc(usage), Tag.name)
    )
    return [
        {"id": tag.id, "name": tag.name, "color": tag.color, "usage_count": count}
        for tag, count in result.all()
    ]
