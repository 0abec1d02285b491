"""
Organization-defined project attributes and their per-project values.
"""
import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.permissions import Action, authorize
from ..models.custom_attribute import CustomAttribute, ProjectAttributeValue, AttributeType
from ..models.project import Project
from ..models.user import User
from ..schemas.custom_attribute import CustomAttributeCreate, CustomAttributeUpdate, AttributeValueIn
from . import activity_service

logger = logging.getLogger(__name__)

NUMERIC_TYPES = {AttributeType.NUMBER, AttributeType.PROGRESS, AttributeType.RATING}
BOOLEAN_VALUES = {"true", "false"}


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


async def list_attributes(db: AsyncSession, organization_id: str, active_only: bool = False) -> List[CustomAttribute]:
    query = select(CustomAttribute).where(CustomAttribute.organization_id == organization_id)
    if active_only:
        query = query.where(CustomAttribute.is_active == True)  # noqa: E712
    result = await db.execute(query.order_by(CustomAttribute.display_order, CustomAttribute.created_at.desc()))
    return list(result.scalars().all())


async def get_attribute(db: AsyncSession, attribute_id: str, organization_id: str) -> CustomAttribute:
    result = await db.execute(
        select(CustomAttribute).where(
            CustomAttribute.id == attribute_id,
            CustomAttribute.organization_id == organization_id,
        )
    )
    attribute = result.scalar_one_or_none()
    if not attribute:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Custom attribute not found")
    return attribute


async def create_attribute(db: AsyncSession, user: User, data: CustomAttributeCreate) -> CustomAttribute:
    authorize(user, Action.CUSTOM_ATTRIBUTE_MANAGE)

    existing = await db.execute(
        select(CustomAttribute.id).where(
            CustomAttribute.organization_id == user.organization_id,
            CustomAttribute.name == data.name,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise _bad_request("An attribute with this name already exists")
    if data.type == AttributeType.DROPDOWN and not data.options:
        raise _bad_request("Dropdown attributes need at least one option")

    max_order = await db.execute(
        select(func.max(CustomAttribute.display_order)).where(CustomAttribute.organization_id == user.organization_id)
    )
    attribute = CustomAttribute(
        organization_id=user.organization_id,
        name=data.name,
        label=data.label,
        type=data.type,
        description=data.description,
        is_required=data.is_required,
        default_value=data.default_value,
        options=list(data.options),
        validation_rules=data.validation_rules.model_dump(exclude_none=True),
        display_order=(max_order.scalar() or 0) + 1,
        is_active=True,
        created_by=user.id,
    )
    db.add(attribute)
    await db.flush()

    activity_service.log_activity(
        db,
        organization_id=user.organization_id,
        user_id=user.id,
        action="custom_attribute_created",
        entity_type="custom_attribute",
        entity_id=attribute.id,
        new_values={"name": attribute.name, "type": AttributeType(attribute.type).value},
    )
    await db.commit()
    return attribute


async def update_attribute(db: AsyncSession, attribute: CustomAttribute, user: User, data: CustomAttributeUpdate) -> CustomAttribute:
    authorize(user, Action.CUSTOM_ATTRIBUTE_MANAGE)

    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(attribute, field, value)

    activity_service.log_activity(
        db,
        organization_id=attribute.organization_id,
        user_id=user.id,
        action="custom_attribute_updated",
        entity_type="custom_attribute",
        entity_id=attribute.id,
        new_values=changes,
    )
    await db.commit()
    return attribute


async def delete_attribute(db: AsyncSession, attribute: CustomAttribute, user: User) -> None:
    """Delete an attribute that no project has a value for"""
    authorize(user, Action.CUSTOM_ATTRIBUTE_DELETE)

    in_use = await db.execute(
        select(func.count(ProjectAttributeValue.id)).where(ProjectAttributeValue.attribute_id == attribute.id)
    )
    if (in_use.scalar() or 0) > 0:
        raise _bad_request("Cannot delete attribute that is being used by projects")

    activity_service.log_activity(
        db,
        organization_id=attribute.organization_id,
        user_id=user.id,
        action="custom_attribute_deleted",
        entity_type="custom_attribute",
        entity_id=attribute.id,
        old_values={"name": attribute.name},
    )
    await db.delete(attribute)
    await db.commit()


def validate_value(attribute: CustomAttribute, value: Optional[str]) -> Optional[str]:
    """Check a raw value against the attribute's type and rules; returns the value to store"""
    if value is None or str(value).strip() == "":
        if attribute.is_required:
            raise _bad_request(f"{attribute.label} is required")
        return None

    value = str(value).strip()
    kind = AttributeType(attribute.type)
    rules = attribute.validation_rules or {}

    if kind == AttributeType.DROPDOWN and value not in (attribute.options or []):
        raise _bad_request(f"{attribute.label} must be one of: {', '.join(attribute.options or [])}")

    if kind in NUMERIC_TYPES:
        try:
            number = float(value)
        except ValueError:
            raise _bad_request(f"{attribute.label} must be a number")
        if rules.get("min") is not None and number < rules["min"]:
            raise _bad_request(f"{attribute.label} must be at least {rules['min']}")
        if rules.get("max") is not None and number > rules["max"]:
            raise _bad_request(f"{attribute.label} must be at most {rules['max']}")

    if kind == AttributeType.CHECKBOX:
        if value.lower() not in BOOLEAN_VALUES:
            raise _bad_request(f"{attribute.label} must be true or false")
        value = value.lower()

    if kind == AttributeType.DATE:
        try:
            date.fromisoformat(value[:10])
        except ValueError:
            raise _bad_request(f"{attribute.label} must be a date (YYYY-MM-DD)")

    if rules.get("pattern") and not re.fullmatch(rules["pattern"], value):
        raise _bad_request(f"{attribute.label} has an invalid format")

    return value


async def get_project_values(db: AsyncSession, project: Project) -> List[Dict[str, Any]]:
    """Active attributes of the project's organization with the project's values (or defaults)"""
    attributes = await list_attributes(db, project.organization_id, active_only=True)
    result = await db.execute(
        select(ProjectAttributeValue).where(ProjectAttributeValue.project_id == project.id)
    )
    values = {v.attribute_id: v.value for v in result.scalars().all()}
    return [
        {
            "attribute_id": attribute.id,
            "name": attribute.name,
            "label": attribute.label,
            "type": attribute.type,
            "value": values.get(attribute.id, attribute.default_value),
        }
        for attribute in attributes
    ]


async def set_project_values(db: AsyncSession, project: Project, user: User,
                             items: Sequence[AttributeValueIn]) -> List[Dict[str, Any]]:
    authorize(user, Action.PROJECT_UPDATE, project.owner_id)

    attributes = {a.id: a for a in await list_attributes(db, project.organization_id)}
    result = await db.execute(
        select(ProjectAttributeValue).where(ProjectAttributeValue.project_id == project.id)
    )
    existing = {v.attribute_id: v for v in result.scalars().all()}

    changed: Dict[str, Optional[str]] = {}
    for item in items:
        attribute = attributes.get(item.attribute_id)
        if attribute is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Custom attribute not found")
        value = validate_value(attribute, item.value)

        row = existing.get(attribute.id)
        if value is None:
            if row is not None:
                await db.delete(row)
                changed[attribute.name] = None
            continue
        if row is None:
            db.add(ProjectAttributeValue(project_id=project.id, attribute_id=attribute.id, value=value))
        elif row.value != value:
            row.value = value
        changed[attribute.name] = value

    if changed:
        activity_service.log_activity(
            db,
            organization_id=project.organization_id,
            user_id=user.id,
            action="attributes_updated",
            entity_type="project",
            entity_id=project.id,
            new_values=changed,
        )
    await db.commit()
    return await get_project_values(db, project)
