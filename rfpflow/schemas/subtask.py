from typing import Optional
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from ..models.project import ProjectPriority
from .user import UserBrief


class SubtaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    actual_hours: Optional[float] = Field(None, ge=0)
    priority: ProjectPriority = ProjectPriority.MEDIUM


class SubtaskCreate(SubtaskBase):
    pass


class SubtaskCreateForProject(SubtaskBase):
    """Body of POST /subtasks, where the project is named in the payload"""
    project_id: str = Field(..., alias="projectId")

    class Config:
        populate_by_name = True


class SubtaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    actual_hours: Optional[float] = Field(None, ge=0)
    priority: Optional[ProjectPriority] = None
    completed: Optional[bool] = None

    @field_validator("title", "priority", "completed")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class Subtask(SubtaskBase):
    id: str
    project_id: str
    completed: bool
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    assignee: Optional[UserBrief] = None

    class Config:
        from_attributes = True


class SubtaskStats(BaseModel):
    total: int
    completed: int
    overdue: int
    completion_percentage: int
