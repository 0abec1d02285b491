from sqlalchemy import Column, String, ForeignKey, JSON
from sqlalchemy.orm import relationship
from .base import UUIDBaseModel


class ActivityLog(UUIDBaseModel):
    """Audit trail row: who did what to which entity, with before/after values"""
    __tablename__ = "activity_log"

    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=True)
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String, nullable=False, index=True)
    old_values = Column(JSON)
    new_values = Column(JSON)
    ip_address = Column(String(64))
    user_agent = Column(String(500))

    user = relationship("User")

    def __repr__(self):
        return f"<ActivityLog(action='{self.action}', entity='{self.entity_type}:{self.entity_id}')>"
