from typing import Any, List
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.database import get_db
from ...core.config import settings
from ...core.limiter import limiter
from ...models.user import User
from ...schemas.invitation import Invitation as InvitationResponse, InvitationCreate, InvitationResult
from ...services import invitation_service
from ..deps import get_current_user

router = APIRouter()


@router.get("", response_model=List[InvitationResponse])
async def list_invitations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await invitation_service.list_invitations(db, current_user)


@router.post("", response_model=InvitationResult, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_INVITATIONS)
async def create_invitations(
    request: Request,
    invitation_data: InvitationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Invite one or more email addresses to the caller's organization"""
    invitations, skipped = await invitation_service.create_invitations(
        db,
        current_user,
        invitation_data.emails,
        role=invitation_data.role,
        message=invitation_data.message,
    )
    return {"invitations": invitations, "skipped": skipped}
