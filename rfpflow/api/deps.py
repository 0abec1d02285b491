from typing import Any, Dict, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..db.database import get_db
from ..core.permissions import Action, authorize
from ..core.security import verify_session_token
from ..models.user import User

security = HTTPBearer(auto_error=False)


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Dict[str, Any]:
    """Verified session-token claims of the caller"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = verify_session_token(credentials.credentials)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims


async def get_current_user(
    claims: Dict[str, Any] = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated, active user"""
    result = await db.execute(
        select(User).where(User.id == claims["sub"])
    )
    user = result.scalar_one_or_none()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )

    return user


async def get_user_for_token(token: str, db: AsyncSession) -> Optional[User]:
    """Resolve an active user from a raw token (websocket handshakes)"""
    claims = verify_session_token(token)
    if claims is None:
        return None
    result = await db.execute(select(User).where(User.id == claims["sub"]))
    user = result.scalar_one_or_none()
    if user and user.is_active:
        return user
    return None


def require_action(action: Action):
    """Dependency factory for actions that do not depend on ownership."""
    def check_permission(current_user: User = Depends(get_current_user)) -> User:
        authorize(current_user, action)
        return current_user
    return check_permission
