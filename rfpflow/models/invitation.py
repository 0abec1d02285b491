from sqlalchemy import Column, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from .base import UUIDBaseModel, enum_column_type
from .user import UserRole


class Invitation(UUIDBaseModel):
    """Pending invitation for an email address to join an organization"""
    __tablename__ = "invitations"

    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    role = Column(enum_column_type(UserRole, "invitation_role"), default=UserRole.MEMBER, nullable=False)
    message = Column(Text)
    token = Column(String(64), unique=True, nullable=False)

    invited_by = Column(String, ForeignKey("users.id"), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True))
    accepted_by = Column(String, ForeignKey("users.id"), nullable=True)

    invited_by_user = relationship("User", foreign_keys=[invited_by], lazy="selectin")
    accepted_by_user = relationship("User", foreign_keys=[accepted_by])

    def __repr__(self):
        return f"<Invitation(email='{self.email}', role='{self.role}')>"
