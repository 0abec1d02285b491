from sqlalchemy import Column, String, Boolean, ForeignKey, DateTime, JSON, Text
from sqlalchemy.orm import relationship
import enum
from .base import TimestampMixin, enum_column_type
from ..db.database import Base


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"


ROLE_LABELS = {
    UserRole.ADMIN: "Admin",
    UserRole.MANAGER: "Manager",
    UserRole.MEMBER: "Member",
}


class User(TimestampMixin, Base):
    """User row mirrored from the identity provider.

    The primary key is the identity provider's user id (e.g. ``user_2abc...``),
    not a locally generated UUID.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)

    # Basic user info
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    avatar_url = Column(String(500))

    # Role and status
    role = Column(enum_column_type(UserRole, "user_role"), default=UserRole.MEMBER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime(timezone=True))

    # Profile information
    phone = Column(String(50))
    location = Column(String(255))
    bio = Column(Text)
    timezone = Column(String(50))
    job_title = Column(String(100))
    department = Column(String(100))

    # Notification preferences
    preferences = Column(JSON, default=dict)

    organization = relationship("Organization", back_populates="users")

    @property
    def full_name(self):
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    @property
    def is_manager(self):
        return self.role in [UserRole.ADMIN, UserRole.MANAGER]

    def __repr__(self):
        return f"<User(email='{self.email}', role='{self.role}')>"
