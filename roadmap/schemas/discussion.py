from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from roadmap.schemas.user import UserBrief


class DiscussionCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class DiscussionUpdate(DiscussionCreate):
    pass


class Discussion(BaseModel):
    id: int
    content: str
    project_id: int
    author_id: int
    author: Optional[UserBrief] = None
    created_at: datetime
    updated_at: datetime
    like_count: int = 0
    reply_count: int = 0
    liked_by_me: bool = False

    class Config:
        from_attributes = True


class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    parent_id: Optional[int] = None


class ReplyUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class Reply(BaseModel):
    id: int
    content: str
    discussion_id: int
    author_id: int
    parent_id: Optional[int] = None
    author: Optional[UserBrief] = None
    created_at: datetime
    updated_at: datetime
    like_count: int = 0
    liked_by_me: bool = False
    children: List["Reply"] = []

    class Config:
        from_attributes = True
