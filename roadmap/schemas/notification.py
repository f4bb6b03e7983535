from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from roadmap.schemas.common import Pagination
from roadmap.schemas.project import ProjectBrief
from roadmap.schemas.user import UserBrief


class Notification(BaseModel):
    id: int
    type: str
    reference_id: Optional[int] = None
    message: str
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationList(BaseModel):
    notifications: List[Notification]
    unread_count: int
    pagination: Pagination


class Activity(BaseModel):
    id: int
    action: str
    user_id: int
    project_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="meta")
    user: Optional[UserBrief] = None
    project: Optional[ProjectBrief] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ActivityList(BaseModel):
    activities: List[Activity]
    pagination: Pagination
