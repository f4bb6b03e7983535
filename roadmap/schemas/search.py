from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from roadmap.schemas.common import Pagination
from roadmap.schemas.feature import Feature
from roadmap.schemas.project import ProjectBrief, ProjectSummary
from roadmap.schemas.user import UserBrief


class FeatureSearchItem(Feature):
    project: Optional[ProjectBrief] = None


class SearchResults(BaseModel):
    projects: List[ProjectSummary] = []
    features: List[FeatureSearchItem] = []
    pagination: Pagination


class ProjectSearchResults(BaseModel):
    projects: List[ProjectSummary]
    pagination: Pagination


class FeatureSearchResults(BaseModel):
    features: List[FeatureSearchItem]
    pagination: Pagination


class PublicProject(BaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    category: Optional[str] = None
    logo_url: Optional[str] = None
    owner: Optional[UserBrief] = None
    created_at: datetime
    total_votes: int
    follower_count: int
    feature_count: int
    # Доля завершенных фич, а не поле progress проекта
    progress: int


class PublicProjectResults(BaseModel):
    projects: List[PublicProject]
    pagination: Pagination
