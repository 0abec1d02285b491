from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import UUIDBaseModel
from .project import project_tags

DEFAULT_TAG_COLOR = "#3B82F6"


class Tag(UUIDBaseModel):
    """Organization-wide label that can be attached to projects"""
    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("organization_id", "name", name="uq_tags_org_name"),)

    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    color = Column(String(20), default=DEFAULT_TAG_COLOR, nullable=False)
    created_by = Column(String, ForeignKey("users.id"), nullable=True)

    creator = relationship("User")
    projects = relationship("Project", secondary=project_tags, back_populates="tags")

    def __repr__(self):
        return f"<Tag(name='{self.name}')>"
