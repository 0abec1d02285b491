from typing import Any, List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.database import get_db
from ...models.user import User
from ...schemas.custom_attribute import (
    CustomAttribute as CustomAttributeResponse, CustomAttributeCreate, CustomAttributeUpdate,
)
from ...services import custom_attribute_service
from ..deps import get_current_user

router = APIRouter()


@router.get("", response_model=List[CustomAttributeResponse])
async def list_custom_attributes(
    active_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await custom_attribute_service.list_attributes(db, current_user.organization_id, active_only=active_only)


@router.post("", response_model=CustomAttributeResponse, status_code=status.HTTP_201_CREATED)
async def create_custom_attribute(
    attribute_data: CustomAttributeCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await custom_attribute_service.create_attribute(db, current_user, attribute_data)


@router.patch("/{attribute_id}", response_model=CustomAttributeResponse)
async def update_custom_attribute(
    attribute_id: str,
    attribute_data: CustomAttributeUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    attribute = await custom_attribute_service.get_attribute(db, attribute_id, current_user.organization_id)
    return await custom_attribute_service.update_attribute(db, attribute, current_user, attribute_data)


@router.delete("/{attribute_id}")
async def delete_custom_attribute(
    attribute_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    attribute = await custom_attribute_service.get_attribute(db, attribute_id, current_user.organization_id)
    await custom_attribute_service.delete_attribute(db, attribute, current_user)
    return {"message": "Custom attribute deleted successfully"}
