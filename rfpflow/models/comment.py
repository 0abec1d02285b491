from sqlalchemy import Column, String, Text, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from .base import UUIDBaseModel


class Comment(UUIDBaseModel):
    """Project comment, optionally threaded under a parent comment"""
    __tablename__ = "comments"

    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)

    # Threading support
    parent_id = Column(String, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)

    is_edited = Column(Boolean, default=False, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="comments")
    user = relationship("User", lazy="selectin")
    parent = relationship("Comment", remote_side="Comment.id")

    @property
    def is_reply(self):
        return self.parent_id is not None

    def __repr__(self):
        return f"<Comment(project_id='{self.project_id}', user_id='{self.user_id}')>"
