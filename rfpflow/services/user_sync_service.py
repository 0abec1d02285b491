"""
Mirror identity-provider users into the local ``users`` table.

The identity provider owns credentials; this service only keeps profile
fields, organization membership and role in sync. A pending invitation for
the user's email decides organization and role; otherwise the user joins the
default organization, where the first member becomes admin.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..models.base import utcnow
from ..models.invitation import Invitation
from ..models.organization import Organization
from ..models.user import User, UserRole
from . import activity_service

logger = logging.getLogger(__name__)


def primary_email(data: Dict[str, Any]) -> Optional[str]:
    """Primary address from an identity-provider user payload"""
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for address in addresses:
        if primary_id and address.get("id") == primary_id:
            return address.get("email_address")
    if addresses:
        return addresses[0].get("email_address")
    return None


async def get_or_create_default_organization(db: AsyncSession) -> Organization:
    slug = settings.DEFAULT_ORGANIZATION_SLUG
    result = await db.execute(select(Organization).where(Organization.slug == slug))
    org = result.scalar_one_or_none()
    if org is None:
        org = Organization(name=slug.replace("-", " ").title(), slug=slug, is_active=True)
        db.add(org)
        await db.flush()
        logger.info(f"Created default organization '{slug}'")
    return org


async def find_pending_invitation(db: AsyncSession, email: str) -> Optional[Invitation]:
    result = await db.execute(
        select(Invitation)
        .where(
            func.lower(Invitation.email) == email.lower(),
            Invitation.accepted_at.is_(None),
            Invitation.expires_at > utcnow(),
        )
        .order_by(Invitation.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _organization_has_members(db: AsyncSession, organization_id: str) -> bool:
    result = await db.execute(select(func.count(User.id)).where(User.organization_id == organization_id))
    return (result.scalar() or 0) > 0


async def sync_user(
    db: AsyncSession,
    identity_id: str,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    avatar_url: Optional[str] = None,
    record_login: bool = False,
) -> Tuple[User, bool]:
    """Create or update the local row for an identity-provider user.

    Returns the user and whether it was created.
    """
    email = email.strip().lower()
    result = await db.execute(select(User).where(User.id == identity_id))
    user = result.scalar_one_or_none()

    if user is not None:
        if email != (user.email or "").lower():
            taken = await db.execute(
                select(User.id).where(func.lower(User.email) == email, User.id != identity_id)
            )
            if taken.scalar_one_or_none() is not None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
        user.email = email
        user.first_name = first_name
        user.last_name = last_name
        user.avatar_url = avatar_url
        if record_login:
            user.last_login_at = utcnow()
        await db.commit()
        return user, False

    taken = await db.execute(select(User.id).where(func.lower(User.email) == email))
    if taken.scalar_one_or_none() is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    invitation = await find_pending_invitation(db, email)
    if invitation is not None:
        organization_id = invitation.organization_id
        role = UserRole(invitation.role)
    else:
        org = await get_or_create_default_organization(db)
        organization_id = org.id
        role = UserRole.MEMBER if await _organization_has_members(db, org.id) else UserRole.ADMIN

    user = User(
        id=identity_id,
        organization_id=organization_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        avatar_url=avatar_url,
        role=role,
        is_active=True,
        preferences={},
        last_login_at=utcnow() if record_login else None,
    )
    db.add(user)
    await db.flush()

    if invitation is not None:
        invitation.accepted_at = utcnow()
        invitation.accepted_by = user.id

    activity_service.log_activity(
        db,
        organization_id=organization_id,
        user_id=user.id,
        action="user_joined",
        entity_type="user",
        entity_id=user.id,
        new_values={"email": email, "role": role.value, "invitation_id": invitation.id if invitation else None},
    )
    await db.commit()
    logger.info(f"Synced new user {identity_id} as {role.value} in organization {organization_id}")
    return user, True


async def deactivate_identity(db: AsyncSession, identity_id: str) -> Optional[User]:
    """Soft-delete the local row of a removed identity-provider user"""
    result = await db.execute(select(User).where(User.id == identity_id))
    user = result.scalar_one_or_none()
    if user is None:
        logger.warning(f"Deactivation requested for unknown user {identity_id}")
        return None
    if user.is_active:
        user.is_active = False
        await db.commit()
        logger.info(f"Deactivated user {identity_id} after identity deletion")
    return user
