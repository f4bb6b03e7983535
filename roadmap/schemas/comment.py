from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from roadmap.schemas.user import UserBrief


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    parent_id: Optional[int] = None


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class Comment(BaseModel):
    id: int
    content: str
    feature_id: int
    author_id: int
    parent_id: Optional[int] = None
    author: Optional[UserBrief] = None
    created_at: datetime
    updated_at: datetime
    like_count: int = 0
    liked_by_me: bool = False
    replies: List["Comment"] = []

    class Config:
        from_attributes = True


class LikeState(BaseModel):
    liked: bool
    like_count: int
