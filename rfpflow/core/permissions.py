"""
Role and ownership policy for every mutating operation.

Each Action maps to one Rule. A caller is allowed when their role is listed
in the rule, or when the rule admits owners and the caller owns the entity.
"""
import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional

from fastapi import HTTPException, status

from ..models.user import User, UserRole


class Action(str, enum.Enum):
    PROJECT_CREATE = "project:create"
    PROJECT_UPDATE = "project:update"
    PROJECT_UPDATE_STAGE = "project:update_stage"
    PROJECT_UPDATE_PROGRESS = "project:update_progress"
    PROJECT_ARCHIVE = "project:archive"
    PROJECT_CLONE = "project:clone"
    PROJECT_DELETE = "project:delete"
    PROJECT_EXPORT = "project:export"
    SUBTASK_MANAGE = "subtask:manage"
    SUBTASK_TOGGLE = "subtask:toggle"
    COMMENT_CREATE = "comment:create"
    COMMENT_MODERATE = "comment:moderate"
    TAG_MANAGE = "tag:manage"
    USER_CHANGE_ROLE = "user:change_role"
    USER_DEACTIVATE = "user:deactivate"
    USER_REACTIVATE = "user:reactivate"
    INVITATION_CREATE = "invitation:create"
    INVITATION_LIST = "invitation:list"
    NOTIFICATION_SEND = "notification:send"
    CUSTOM_ATTRIBUTE_MANAGE = "custom_attribute:manage"
    CUSTOM_ATTRIBUTE_DELETE = "custom_attribute:delete"


@dataclass(frozen=True)
class Rule:
    roles: FrozenSet[UserRole]
    owner_allowed: bool = False
    self_forbidden: bool = False


ALL_ROLES = frozenset(UserRole)
STAFF = frozenset({UserRole.ADMIN, UserRole.MANAGER})
ADMIN_ONLY = frozenset({UserRole.ADMIN})

POLICY: Dict[Action, Rule] = {
    Action.PROJECT_CREATE: Rule(ALL_ROLES),
    Action.PROJECT_UPDATE: Rule(STAFF, owner_allowed=True),
    Action.PROJECT_UPDATE_STAGE: Rule(STAFF, owner_allowed=True),
    Action.PROJECT_UPDATE_PROGRESS: Rule(STAFF, owner_allowed=True),
    Action.PROJECT_ARCHIVE: Rule(STAFF, owner_allowed=True),
    Action.PROJECT_CLONE: Rule(STAFF, owner_allowed=True),
    Action.PROJECT_DELETE: Rule(ADMIN_ONLY, owner_allowed=True),
    Action.PROJECT_EXPORT: Rule(ALL_ROLES),
    Action.SUBTASK_MANAGE: Rule(STAFF, owner_allowed=True),
    Action.SUBTASK_TOGGLE: Rule(STAFF, owner_allowed=True),
    Action.COMMENT_CREATE: Rule(ALL_ROLES),
    Action.COMMENT_MODERATE: Rule(ADMIN_ONLY, owner_allowed=True),
    Action.TAG_MANAGE: Rule(STAFF),
    Action.USER_CHANGE_ROLE: Rule(ADMIN_ONLY, self_forbidden=True),
    Action.USER_DEACTIVATE: Rule(ADMIN_ONLY, self_forbidden=True),
    Action.USER_REACTIVATE: Rule(ADMIN_ONLY),
    Action.INVITATION_CREATE: Rule(ADMIN_ONLY),
    Action.INVITATION_LIST: Rule(STAFF),
    Action.NOTIFICATION_SEND: Rule(STAFF),
    Action.CUSTOM_ATTRIBUTE_MANAGE: Rule(STAFF),
    Action.CUSTOM_ATTRIBUTE_DELETE: Rule(ADMIN_ONLY),
}


def _owns(user: User, owner_ids: Iterable[Optional[str]]) -> bool:
    return any(owner_id is not None and owner_id == user.id for owner_id in owner_ids)


def is_allowed(user: User, action: Action, owner_id: Optional[str] = None, *extra_owner_ids: Optional[str]) -> bool:
    """Check whether the user may perform the action.

    ``owner_id`` (and any ``extra_owner_ids``) identify who owns the target;
    they only matter for rules that admit owners.
    """
    if not user.is_active:
        return False
    rule = POLICY[action]
    if user.role in rule.roles:
        return True
    return rule.owner_allowed and _owns(user, (owner_id,) + extra_owner_ids)


def authorize(user: User, action: Action, owner_id: Optional[str] = None, *extra_owner_ids: Optional[str]) -> None:
    """Raise 403 unless the user may perform the action."""
    if not is_allowed(user, action, owner_id, *extra_owner_ids):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions"
        )


def ensure_not_self(user: User, action: Action, target_user_id: str, detail: str) -> None:
    """Raise 400 when a rule forbids acting on one's own account."""
    if POLICY[action].self_forbidden and user.id == target_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


def permissions_for_role(role: UserRole) -> List[Action]:
    """Actions a user with the role may perform regardless of ownership"""
    return [action for action, rule in POLICY.items() if role in rule.roles]


def owner_only_actions(role: UserRole) -> List[Action]:
    """Actions the role may perform only on entities it owns"""
    return [action for action, rule in POLICY.items() if role not in rule.roles and rule.owner_allowed]

