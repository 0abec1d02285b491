from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from ..models.project import ProjectStage, ProjectPriority, PriorityBanding
from .user import UserBrief
from .tag import TagBrief


class ProjectBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    priority: ProjectPriority = ProjectPriority.MEDIUM
    due_date: Optional[datetime] = None
    status_notes: Optional[str] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    actual_hours: Optional[float] = Field(None, ge=0)
    budget_amount: Optional[float] = Field(None, ge=0)

    # Client
    client_name: Optional[str] = Field(None, max_length=200)
    client_email: Optional[EmailStr] = None
    rfp_document_url: Optional[str] = Field(None, max_length=1000)
    submission_url: Optional[str] = Field(None, max_length=1000)

    # RFP details
    rfp_added_date: Optional[datetime] = None
    rfp_title: Optional[str] = Field(None, max_length=500)
    state: Optional[str] = Field(None, max_length=100)
    portal_url: Optional[str] = Field(None, max_length=1000)
    folder_url: Optional[str] = Field(None, max_length=1000)

    # Post-review
    priority_banding: Optional[PriorityBanding] = None
    review_comment: Optional[str] = None
    company_assignment: Optional[str] = Field(None, max_length=100)


class ProjectCreate(ProjectBase):
    stage: Optional[ProjectStage] = None
    assigned_to: Optional[str] = None
    tag_ids: List[str] = []


class ProjectUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    stage: Optional[ProjectStage] = None
    priority: Optional[ProjectPriority] = None
    due_date: Optional[datetime] = None
    status_notes: Optional[str] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    actual_hours: Optional[float] = Field(None, ge=0)
    budget_amount: Optional[float] = Field(None, ge=0)
    client_name: Optional[str] = Field(None, max_length=200)
    client_email: Optional[EmailStr] = None
    rfp_document_url: Optional[str] = Field(None, max_length=1000)
    submission_url: Optional[str] = Field(None, max_length=1000)
    rfp_added_date: Optional[datetime] = None
    rfp_title: Optional[str] = Field(None, max_length=500)
    state: Optional[str] = Field(None, max_length=100)
    portal_url: Optional[str] = Field(None, max_length=1000)
    folder_url: Optional[str] = Field(None, max_length=1000)
    priority_banding: Optional[PriorityBanding] = None
    review_comment: Optional[str] = None
    company_assignment: Optional[str] = Field(None, max_length=100)

    @field_validator("title", "stage", "priority")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class ProjectStageUpdate(BaseModel):
    project_id: str = Field(..., alias="projectId")
    new_stage: ProjectStage = Field(..., alias="newStage")

    class Config:
        populate_by_name = True


class ProgressUpdate(BaseModel):
    progress_percentage: int = Field(..., ge=0, le=100)
    status_notes: Optional[str] = None


class ProjectAssign(BaseModel):
    assigned_to: str


class ProjectTagsUpdate(BaseModel):
    tag_ids: List[str] = Field(..., min_length=1)


class Project(ProjectBase):
    id: str
    organization_id: str
    stage: ProjectStage
    owner_id: str
    assigned_to: Optional[str] = None
    progress_percentage: int
    is_archived: bool
    client_email: Optional[str] = None
    priority_banding: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    owner: Optional[UserBrief] = None
    assignee: Optional[UserBrief] = None
    tags: List[TagBrief] = []

    class Config:
        from_attributes = True


class ProjectDetail(Project):
    comments_count: int = 0
    subtasks_count: int = 0
    completed_subtasks_count: int = 0


class ProjectList(BaseModel):
    projects: List[Project]
    total: int
    limit: int
    offset: int


class StageChangeResult(BaseModel):
    changed: bool
    project: Project


class ProgressEntry(BaseModel):
    progress_percentage: Optional[int] = None
    previous_percentage: Optional[int] = None
    status_notes: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


class ProjectProgress(BaseModel):
    project_id: str
    progress_percentage: int
    status_notes: Optional[str] = None
    history: List[ProgressEntry] = []


class KanbanColumn(BaseModel):
    stage: ProjectStage
    label: str
    color: str
    description: str
    projects: List[Project]
    count: int


class KanbanBoard(BaseModel):
    columns: List[KanbanColumn]
    total: int
