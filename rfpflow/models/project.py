from sqlalchemy import Column, String, Text, Boolean, ForeignKey, DateTime, Integer, Float, Table
from sqlalchemy.orm import relationship
import enum
from .base import UUIDBaseModel, enum_column_type
from ..db.database import Base


class ProjectStage(str, enum.Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    SUBMITTED = "submitted"
    SKIPPED = "skipped"
    WON = "won"
    LOST = "lost"


class ProjectPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class PriorityBanding(str, enum.Enum):
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"
    NO_BID = "No bid"


# Board metadata, in column order
STAGE_METADATA = {
    ProjectStage.UNASSIGNED: {"label": "Unassigned", "color": "#6B7280", "description": "New RFPs awaiting assignment"},
    ProjectStage.ASSIGNED: {"label": "Assigned", "color": "#3B82F6", "description": "RFPs assigned to team members"},
    ProjectStage.SUBMITTED: {"label": "Submitted", "color": "#F59E0B", "description": "Completed proposals submitted to clients"},
    ProjectStage.SKIPPED: {"label": "Skipped", "color": "#6B7280", "description": "RFPs we chose not to pursue"},
    ProjectStage.WON: {"label": "Won", "color": "#10B981", "description": "Successful proposals that became contracts"},
    ProjectStage.LOST: {"label": "Lost", "color": "#EF4444", "description": "Unsuccessful proposals"},
}

KANBAN_COLUMNS = list(STAGE_METADATA.keys())

PRIORITY_WEIGHTS = {
    ProjectPriority.LOW: 1,
    ProjectPriority.MEDIUM: 2,
    ProjectPriority.HIGH: 3,
    ProjectPriority.URGENT: 4,
}


project_tags = Table(
    "project_tags",
    Base.metadata,
    Column("project_id", String, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Project(UUIDBaseModel):
    """RFP project tracked through the stage pipeline"""
    __tablename__ = "projects"

    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)

    # Basic project info
    title = Column(String(200), nullable=False)
    description = Column(Text)
    stage = Column(enum_column_type(ProjectStage, "project_stage"), default=ProjectStage.UNASSIGNED, nullable=False, index=True)
    priority = Column(enum_column_type(ProjectPriority, "project_priority"), default=ProjectPriority.MEDIUM, nullable=False)
    due_date = Column(DateTime(timezone=True))

    # Ownership and progress
    owner_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    progress_percentage = Column(Integer, default=0, nullable=False)
    status_notes = Column(Text)
    estimated_hours = Column(Float)
    actual_hours = Column(Float)
    budget_amount = Column(Float)

    # Client
    client_name = Column(String(200))
    client_email = Column(String(255))
    rfp_document_url = Column(String(1000))
    submission_url = Column(String(1000))

    # RFP details
    rfp_added_date = Column(DateTime(timezone=True))
    rfp_title = Column(String(500))
    state = Column(String(100))
    portal_url = Column(String(1000))
    folder_url = Column(String(1000))

    # Post-review
    priority_banding = Column(String(20))
    review_comment = Column(Text)
    assigned_to = Column(String, ForeignKey("users.id"), nullable=True)
    company_assignment = Column(String(100))

    is_archived = Column(Boolean, default=False, nullable=False)

    # Relationships
    owner = relationship("User", foreign_keys=[owner_id], lazy="selectin")
    assignee = relationship("User", foreign_keys=[assigned_to], lazy="selectin")
    tags = relationship("Tag", secondary=project_tags, back_populates="projects", lazy="selectin")
    comments = relationship("Comment", back_populates="project", cascade="all, delete-orphan")
    subtasks = relationship("Subtask", back_populates="project", cascade="all, delete-orphan")
    attribute_values = relationship("ProjectAttributeValue", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Project(title='{self.title}', stage='{self.stage}')>"
