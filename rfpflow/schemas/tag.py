from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class TagBrief(BaseModel):
    id: str
    name: str
    color: str

    class Config:
        from_attributes = True


class Tag(TagBrief):
    organization_id: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)


class TagUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)


class TagUsage(TagBrief):
    usage_count: int = 0
