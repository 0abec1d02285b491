from .user import User, UserBrief, ProfileUpdate, RoleUpdate, NotificationPreferences, UserSyncData
from .tag import Tag, TagBrief, TagCreate, TagUpdate, TagUsage
from .project import (
    Project, ProjectDetail, ProjectCreate, ProjectUpdate, ProjectList, ProjectStageUpdate,
    ProgressUpdate, ProjectProgress, ProjectAssign, ProjectTagsUpdate, StageChangeResult, KanbanColumn, KanbanBoard
)
from .comment import Comment, CommentCreate, CommentUpdate, CommentStats
from .subtask import Subtask, SubtaskCreate, SubtaskCreateForProject, SubtaskUpdate, SubtaskStats
from .notification import Notification, NotificationCreate, NotificationList
from .invitation import Invitation, InvitationCreate, InvitationResult
from .custom_attribute import (
    CustomAttribute, CustomAttributeCreate, CustomAttributeUpdate,
    AttributeValue, AttributeValuesUpdate
)
from .activity import ActivityEntry
