from typing import Optional, Literal
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from ..models.user import UserRole


class UserBrief(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: UserRole

    class Config:
        from_attributes = True


class User(UserBrief):
    organization_id: str
    is_active: bool
    last_login_at: Optional[datetime] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    timezone: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = None
    timezone: Optional[str] = Field(None, max_length=50)
    job_title: Optional[str] = Field(None, max_length=100)
    department: Optional[str] = Field(None, max_length=100)


class RoleUpdate(BaseModel):
    role: UserRole


class NotificationPreferences(BaseModel):
    email_notifications: bool
    project_assignments: bool
    due_date_reminders: bool
    comment_mentions: bool
    weekly_summary: bool
    notification_frequency: Literal["immediate", "hourly", "daily", "weekly"]
    quiet_hours_start: Optional[str] = None
    quiet_hours_end: Optional[str] = None


class UserSyncData(BaseModel):
    """Profile fields the client can supply when the token carries no email"""
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
