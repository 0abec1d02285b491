"""Audit trail: who did what to which entity."""
import logging
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    db: AsyncSession,
    *,
    organization_id: str,
    user_id: Optional[str],
    action: str,
    entity_type: str,
    entity_id: str,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> ActivityLog:
    """Stage an activity row in the caller's transaction."""
    entry = ActivityLog(
        organization_id=organization_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        old_values=jsonable_encoder(old_values) if old_values is not None else None,
        new_values=jsonable_encoder(new_values) if new_values is not None else None,
    )
    if request is not None:
        entry.ip_address = request.client.host if request.client else None
        entry.user_agent = (request.headers.get("user-agent") or "")[:500] or None
    db.add(entry)
    return entry


async def get_entity_history(
    db: AsyncSession,
    entity_type: str,
    entity_id: str,
    action: Optional[str] = None,
    limit: int = 50,
) -> List[ActivityLog]:
    query = select(ActivityLog).where(
        ActivityLog.entity_type == entity_type,
        ActivityLog.entity_id == entity_id,
    )
    if action:
        query = query.where(ActivityLog.action == action)
    query = query.order_by(desc(ActivityLog.created_at)).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())
