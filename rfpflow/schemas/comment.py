from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from .user import UserBrief


class CommentCreate(BaseModel):
    project_id: str = Field(..., alias="projectId")
    content: str = Field(..., min_length=1, max_length=10000)
    parent_id: Optional[str] = None

    class Config:
        populate_by_name = True
        str_strip_whitespace = True


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)

    class Config:
        str_strip_whitespace = True


class Comment(BaseModel):
    id: str
    project_id: str
    user_id: str
    content: str
    parent_id: Optional[str] = None
    is_edited: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserBrief] = None

    class Config:
        from_attributes = True


class CommenterCount(BaseModel):
    user_id: str
    full_name: Optional[str] = None
    count: int


class CommentStats(BaseModel):
    total: int
    last_7_days: int
    top_commenters: List[CommenterCount] = []
