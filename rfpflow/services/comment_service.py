import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import select, func, desc, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.permissions import Action, authorize
from ..models.base import utcnow
from ..models.comment import Comment
from ..models.notification import NotificationType
from ..models.project import Project
from ..models.user import User
from . import activity_service, notification_service, realtime

logger = logging.getLogger(__name__)

TOP_COMMENTERS_LIMIT = 5


async def _load_comment(db: AsyncSession, comment_id: str) -> Optional[Comment]:
    result = await db.execute(
        select(Comment).where(Comment.id == comment_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_comment(db: AsyncSession, comment_id: str, organization_id: str) -> Comment:
    """Comment whose project belongs to the organization, or 404"""
    result = await db.execute(
        select(Comment)
        .join(Project, Project.id == Comment.project_id)
        .where(Comment.id == comment_id, Project.organization_id == organization_id)
    )
    comment = result.scalar_one_or_none()
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


async def list_comments(db: AsyncSession, project_id: str) -> List[Comment]:
    """Comments on a project, oldest first"""
    result = await db.execute(
        select(Comment).where(Comment.project_id == project_id).order_by(Comment.created_at, Comment.id)
    )
    return list(result.scalars().all())


async def create_comment(db: AsyncSession, project: Project, user: User, content: str,
                         parent_id: Optional[str] = None) -> Comment:
    authorize(user, Action.COMMENT_CREATE)

    if parent_id:
        parent = await _load_comment(db, parent_id)
        if not parent or parent.project_id != project.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Parent comment does not belong to this project"
            )

    comment = Comment(
        project_id=project.id,
        user_id=user.id,
        content=content.strip(),
        parent_id=parent_id,
        is_edited=False,
    )
    db.add(comment)
    await db.flush()

    activity_service.log_activity(
        db,
        organization_id=project.organization_id,
        user_id=user.id,
        action="comment_added",
        entity_type="project",
        entity_id=project.id,
        new_values={"comment_id": comment.id},
    )
    await db.commit()

    if project.owner_id != user.id:
        await notification_service.notify_safely(
            db,
            user_id=project.owner_id,
            organization_id=project.organization_id,
            title="New comment",
            message=f'{user.full_name} commented on "{project.title}"',
            notification_type=NotificationType.COMMENT_ADDED,
            entity_type="project",
            entity_id=project.id,
            created_by=user.id,
        )

    comment = await _load_comment(db, comment.id)
    await realtime.publish("comments", realtime.EventType.INSERT, project.organization_id, comment)
    return comment


async def update_comment(db: AsyncSession, comment: Comment, user: User, content: str, organization_id: str) -> Comment:
    """Authors edit their own comments; admins may moderate any comment"""
    authorize(user, Action.COMMENT_MODERATE, comment.user_id)

    old_record = realtime.to_record(comment)
    comment.content = content.strip()
    comment.is_edited = True
    await db.commit()

    comment = await _load_comment(db, comment.id)
    await realtime.publish("comments", realtime.EventType.UPDATE, organization_id, comment, old_record=old_record)
    return comment


async def delete_comment(db: AsyncSession, comment: Comment, user: User, organization_id: str) -> None:
    authorize(user, Action.COMMENT_MODERATE, comment.user_id)

    old_record = realtime.to_record(comment)
    await db.execute(delete(Comment).where(Comment.parent_id == comment.id))
    await db.delete(comment)
    await db.commit()

    await realtime.publish("comments", realtime.EventType.DELETE, organization_id, None, old_record=old_record)


async def search_comments(db: AsyncSession, organization_id: str, term: str, limit: int = 50) -> List[Comment]:
    result = await db.execute(
        select(Comment)
        .join(Project, Project.id == Comment.project_id)
        .where(Project.organization_id == organization_id, Comment.content.ilike(f"%{term}%"))
        .order_by(desc(Comment.created_at))
        .limit(limit)
    )
    return list(result.scalars().all())


async def count_comments(db: AsyncSession, project_id: str) -> int:
    result = await db.execute(select(func.count(Comment.id)).where(Comment.project_id == project_id))
    return result.scalar() or 0


async def comment_stats(db: AsyncSession, project_id: str) -> Dict[str, Any]:
    total = await count_comments(db, project_id)

    week_ago = utcnow() - timedelta(days=7)
    recent = await db.execute(
        select(func.count(Comment.id)).where(Comment.project_id == project_id, Comment.created_at >= week_ago)
    )

    top = await db.execute(
        select(Comment.user_id, func.count(Comment.id).label("count"))
        .where(Comment.project_id == project_id)
        .group_by(Comment.user_id)
        .order_by(desc("count"))
        .limit(TOP_COMMENTERS_LIMIT)
    )
    rows = top.all()

    names: Dict[str, str] = {}
    if rows:
        users = await db.execute(select(User).where(User.id.in_([r.user_id for r in rows])))
        names = {u.id: u.full_name for u in users.scalars().all()}

    return {
        "total": total,
        "last_7_days": recent.scalar() or 0,
        "top_commenters": [
            {"user_id": r.user_id, "full_name": names.get(r.user_id), "count": r.count} for r in rows
        ],
    }
