from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from roadmap.schemas.user import UserBrief


class Follower(BaseModel):
    id: int
    user_id: int
    project_id: int
    user: Optional[UserBrief] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FollowState(BaseModel):
    following: bool
    follower_count: int
