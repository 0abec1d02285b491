from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from ..models.user import UserRole
from .user import UserBrief


class InvitationCreate(BaseModel):
    emails: List[EmailStr] = Field(..., min_length=1, max_length=50)
    role: UserRole = UserRole.MEMBER
    message: Optional[str] = Field(None, max_length=1000)


class Invitation(BaseModel):
    id: str
    organization_id: str
    email: str
    role: UserRole
    message: Optional[str] = None
    invited_by: Optional[str] = None
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    accepted_by: Optional[str] = None
    created_at: Optional[datetime] = None
    invited_by_user: Optional[UserBrief] = None

    class Config:
        from_attributes = True


class InvitationResult(BaseModel):
    invitations: List[Invitation]
    skipped: List[str] = []
