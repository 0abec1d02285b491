from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from ..models.notification import NotificationType


class NotificationCreate(BaseModel):
    user_id: str
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.SYSTEM
    entity_type: Optional[str] = Field(None, max_length=50)
    entity_id: Optional[str] = None


class Notification(BaseModel):
    id: str
    user_id: str
    organization_id: str
    title: str
    message: str
    type: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationList(BaseModel):
    notifications: List[Notification]
    unread_count: int
