import logging
import secrets
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.permissions import Action, authorize
from ..models.base import utcnow
from ..models.invitation import Invitation
from ..models.user import User, UserRole
from . import activity_service

logger = logging.getLogger(__name__)


def generate_token() -> str:
    return secrets.token_urlsafe(32)


async def list_invitations(db: AsyncSession, user: User) -> List[Invitation]:
    authorize(user, Action.INVITATION_LIST)
    result = await db.execute(
        select(Invitation)
        .where(Invitation.organization_id == user.organization_id)
        .order_by(desc(Invitation.created_at))
    )
    return list(result.scalars().all())


async def create_invitations(
    db: AsyncSession,
    inviter: User,
    emails: Sequence[str],
    role: UserRole = UserRole.MEMBER,
    message: Optional[str] = None,
) -> Tuple[List[Invitation], List[str]]:
    """Invite each address once.

    Registered users and addresses with an unexpired pending invitation are
    skipped. Returns the created invitations and the skipped addresses.
    """
    authorize(inviter, Action.INVITATION_CREATE)

    normalized: List[str] = []
    for email in emails:
        email = str(email).strip().lower()
        if email and email not in normalized:
            normalized.append(email)

    registered = await db.execute(select(func.lower(User.email)).where(func.lower(User.email).in_(normalized)))
    pending = await db.execute(
        select(func.lower(Invitation.email)).where(
            Invitation.organization_id == inviter.organization_id,
            func.lower(Invitation.email).in_(normalized),
            Invitation.accepted_at.is_(None),
            Invitation.expires_at > utcnow(),
        )
    )
    skip = set(registered.scalars().all()) | set(pending.scalars().all())

    to_invite = [email for email in normalized if email not in skip]
    skipped = [email for email in normalized if email in skip]
    if not to_invite:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All users are already registered or have pending invitations"
        )

    expires_at = utcnow() + timedelta(days=settings.INVITATION_EXPIRE_DAYS)
    invitations = []
    for email in to_invite:
        invitation = Invitation(
            organization_id=inviter.organization_id,
            email=email,
            role=role,
            message=message,
            token=generate_token(),
            invited_by=inviter.id,
            expires_at=expires_at,
        )
        db.add(invitation)
        invitations.append(invitation)
    await db.flush()

    activity_service.log_activity(
        db,
        organization_id=inviter.organization_id,
        user_id=inviter.id,
        action="users_invited",
        entity_type="invitation",
        entity_id=invitations[0].id,
        new_values={"emails": to_invite, "role": UserRole(role).value},
    )
    await db.commit()
    logger.info(f"{inviter.id} invited {len(invitations)} user(s), skipped {len(skipped)}")

    ids = [i.id for i in invitations]
    result = await db.execute(
        select(Invitation).where(Invitation.id.in_(ids)).order_by(Invitation.email)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), skipped
