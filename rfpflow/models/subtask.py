from sqlalchemy import Column, String, Text, ForeignKey, Boolean, DateTime, Float
from sqlalchemy.orm import relationship
from .base import UUIDBaseModel, enum_column_type
from .project import ProjectPriority


class Subtask(UUIDBaseModel):
    """Checklist item belonging to a project"""
    __tablename__ = "subtasks"

    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)

    # Assignment
    assigned_to = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    created_by = Column(String, ForeignKey("users.id"), nullable=True)

    # Scheduling
    due_date = Column(DateTime(timezone=True))
    estimated_hours = Column(Float)
    actual_hours = Column(Float)
    priority = Column(enum_column_type(ProjectPriority, "subtask_priority"), default=ProjectPriority.MEDIUM, nullable=False)

    # Completion
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True))
    completed_by = Column(String, ForeignKey("users.id"), nullable=True)

    # Relationships
    project = relationship("Project", back_populates="subtasks")
    assignee = relationship("User", foreign_keys=[assigned_to], lazy="selectin")
    creator = relationship("User", foreign_keys=[created_by])
    completed_by_user = relationship("User", foreign_keys=[completed_by])

    def __repr__(self):
        return f"<Subtask(title='{self.title}', completed={self.completed})>"
