from .organization import Organization
from .user import User, UserRole
from .project import Project, ProjectStage, ProjectPriority, PriorityBanding, project_tags
from .tag import Tag
from .comment import Comment
from .subtask import Subtask
from .notification import Notification, NotificationType
from .activity_log import ActivityLog
from .invitation import Invitation
from .custom_attribute import CustomAttribute, ProjectAttributeValue, AttributeType

__all__ = [
    "Organization", "User", "UserRole",
    "Project", "ProjectStage", "ProjectPriority", "PriorityBanding", "project_tags",
    "Tag", "Comment", "Subtask",
    "Notification", "NotificationType", "ActivityLog", "Invitation",
    "CustomAttribute", "ProjectAttributeValue", "AttributeType",
]
