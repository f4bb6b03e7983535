from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from roadmap.models.project import ProjectVisibility, ProjectRole
from roadmap.schemas.feature import Feature
from roadmap.schemas.member import Member
from roadmap.schemas.stage import Stage, StageCreate
from roadmap.schemas.user import UserBrief


class ProjectBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    logo_url: Optional[str] = None
    visibility: ProjectVisibility = ProjectVisibility.PUBLIC
    progress: int = Field(0, ge=0, le=100)


class ProjectCreate(ProjectBase):
    # Без своих этапов проект получает стандартный набор
    stages: Optional[List[StageCreate]] = None


class ProjectUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    logo_url: Optional[str] = None
    visibility: Optional[ProjectVisibility] = None
    progress: Optional[int] = Field(None, ge=0, le=100)


class ProjectBrief(BaseModel):
    id: int
    title: str
    slug: str

    class Config:
        from_attributes = True


class Project(ProjectBase):
    id: int
    slug: str
    owner_id: int
    owner: Optional[UserBrief] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectSummary(Project):
    feature_count: int = 0
    follower_count: int = 0
    member_count: int = 0
    role: Optional[ProjectRole] = None


class ProjectDetail(Project):
    stages: List[Stage] = []
    features: List[Feature] = []
    members: List[Member] = []
    feature_count: int = 0
    follower_count: int = 0
    user_role: Optional[ProjectRole] = None
    is_following: bool = False
