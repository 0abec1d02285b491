import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.database import get_db
from ...core.config import settings
from ...core.limiter import limiter
from ...models.user import User
from ...schemas.user import User as UserResponse, ProfileUpdate, NotificationPreferences, UserSyncData
from ...services import user_service, user_sync_service
from ..deps import get_current_user, get_current_claims

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user)) -> Any:
    return current_user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await user_service.update_profile(db, current_user, profile_data)


@router.get("/profile/preferences")
async def get_preferences(current_user: User = Depends(get_current_user)) -> Any:
    """Notification preferences, with defaults for anything never saved"""
    return {"preferences": user_service.get_preferences(current_user)}


@router.put("/profile/preferences")
async def update_preferences(
    preferences: NotificationPreferences,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    saved = await user_service.update_preferences(db, current_user, preferences.model_dump())
    return {"preferences": saved}


@router.post("/sync-user")
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def sync_user(
    request: Request,
    sync_data: Optional[UserSyncData] = None,
    claims: Dict[str, Any] = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Create or refresh the caller's row from their identity-provider session.

    Works before the row exists, so it only needs a valid session token.
    """
    sync_data = sync_data or UserSyncData()
    email = sync_data.email or claims.get("email")
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")

    user, created = await user_sync_service.sync_user(
        db,
        claims["sub"],
        str(email),
        first_name=sync_data.first_name or claims.get("first_name") or claims.get("given_name"),
        last_name=sync_data.last_name or claims.get("last_name") or claims.get("family_name"),
        avatar_url=sync_data.avatar_url or claims.get("image_url"),
        record_login=True,
    )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")

    return {"user": UserResponse.model_validate(user), "created": created}
