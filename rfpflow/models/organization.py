from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from .base import UUIDBaseModel


class Organization(UUIDBaseModel):
    """Tenant boundary; every business row belongs to exactly one organization"""
    __tablename__ = "organizations"

    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True)

    users = relationship("User", back_populates="organization")

    def __repr__(self):
        return f"<Organization(slug='{self.slug}')>"
