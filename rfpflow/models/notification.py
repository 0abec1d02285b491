import enum
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .base import UUIDBaseModel


class NotificationType(str, enum.Enum):
    """Types of notifications"""
    ASSIGNMENT = "assignment"
    STAGE_CHANGED = "stage_changed"
    PROGRESS_UPDATED = "progress_updated"
    COMMENT_ADDED = "comment_added"
    ROLE_CHANGE = "role_change"
    ACCOUNT_STATUS = "account_status"
    SYSTEM = "system"


class Notification(UUIDBaseModel):
    """In-app notification addressed to a single user"""
    __tablename__ = "notifications"

    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False, default=NotificationType.SYSTEM.value)

    # Related entity
    entity_type = Column(String(50))
    entity_id = Column(String)

    # Status
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True))

    created_by = Column(String, ForeignKey("users.id"), nullable=True)

    user = relationship("User", foreign_keys=[user_id])

    def __repr__(self):
        return f"<Notification(title='{self.title}', type='{self.type}', user='{self.user_id}')>"
