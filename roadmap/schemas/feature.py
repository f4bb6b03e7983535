from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from roadmap.models.feature import FeatureStatus, FeaturePriority
from roadmap.schemas.comment import Comment
from roadmap.schemas.stage import Stage
from roadmap.schemas.user import UserBrief


class FeatureBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    tags: List[str] = []
    priority: FeaturePriority = FeaturePriority.MEDIUM
    progress: int = Field(0, ge=0, le=100)
    start_date: Optional[datetime] = None
    target_date: Optional[datetime] = None

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: List[str]) -> List[str]:
        # Теги хранятся как множество: без пустых строк и повторов
        tags = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in tags:
                tags.append(tag)
        return tags


class FeatureCreate(FeatureBase):
    status: FeatureStatus = FeatureStatus.OPEN
    stage_id: Optional[int] = None


class FeatureUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[FeatureStatus] = None
    priority: Optional[FeaturePriority] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    start_date: Optional[datetime] = None
    target_date: Optional[datetime] = None
    stage_id: Optional[int] = None


class Feature(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    tags: List[str] = []
    status: FeatureStatus
    priority: FeaturePriority
    progress: int
    vote_count: int
    start_date: Optional[datetime] = None
    target_date: Optional[datetime] = None
    project_id: int
    stage_id: int
    author_id: int
    author: Optional[UserBrief] = None
    stage: Optional[Stage] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FeatureBrief(BaseModel):
    id: int
    title: str
    status: FeatureStatus
    vote_count: int
    project_id: int

    class Config:
        from_attributes = True


class VoteCreate(BaseModel):
    value: int

    @field_validator("value")
    @classmethod
    def check_value(cls, v: int) -> int:
        if v not in (1, -1):
            raise ValueError("Vote value must be 1 or -1")
        return v


class Vote(BaseModel):
    id: int
    value: int
    user_id: int
    feature_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class UserVote(Vote):
    feature: FeatureBrief


class VoteResult(BaseModel):
    vote: Optional[Vote] = None
    vote_count: int


class FeatureDetail(Feature):
    votes: List[Vote] = []
    comment_count: int = 0
    comments: List[Comment] = []
    user_vote: Optional[int] = None
