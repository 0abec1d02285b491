from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.database import get_db
from ...core.permissions import permissions_for_role, owner_only_actions
from ...models.user import User, UserRole
from ...schemas.user import User as UserResponse, RoleUpdate
from ...services import user_service
from ..deps import get_current_user

router = APIRouter()


@router.get("", response_model=List[UserResponse])
async def list_users(
    role: Optional[UserRole] = Query(None),
    include_inactive: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Members of the caller's organization"""
    return await user_service.list_users(
        db, current_user.organization_id, include_inactive=include_inactive, role=role
    )


@router.get("/permissions")
async def get_permissions(
    current_user: User = Depends(get_current_user),
) -> Any:
    """What the caller's role may do, plus the full role matrix"""
    role = UserRole(current_user.role)
    return {
        "role": role.value,
        "permissions": [a.value for a in permissions_for_role(role)],
        "owner_permissions": [a.value for a in owner_only_actions(role)],
        "matrix": {r.value: [a.value for a in permissions_for_role(r)] for r in UserRole},
    }


@router.put("/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    user_id: str,
    role_data: RoleUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    target = await user_service.get_user(db, user_id, current_user.organization_id)
    return await user_service.change_role(db, current_user, target, role_data.role)


@router.put("/{user_id}/deactivate", response_model=UserResponse)
async def deactivate_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    target = await user_service.get_user(db, user_id, current_user.organization_id)
    return await user_service.set_active(db, current_user, target, False)


@router.put("/{user_id}/reactivate", response_model=UserResponse)
async def reactivate_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    target = await user_service.get_user(db, user_id, current_user.organization_id)
    return await user_service.set_active(db, current_user, target, True)
