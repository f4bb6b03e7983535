import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.project as project_repo
import roadmap.repo.search as search_repo
from roadmap.cache import client as cache
from roadmap.core.exceptions import ValidationError
from roadmap.models.feature import FeatureStatus, FeaturePriority
from roadmap.models.project import Project, ProjectVisibility
from roadmap.models.user import User
from roadmap.schemas.common import paginate
from roadmap.schemas.project import ProjectSummary
from roadmap.schemas.search import FeatureSearchItem, PublicProject
from roadmap.schemas.user import UserBrief

logger = logging.getLogger(__name__)

PUBLIC_SEARCH_TTL = 300
MIN_QUERY_LENGTH = 2


async def summarize_projects(db: AsyncSession, projects: List[Project]) -> List[ProjectSummary]:
    ids = [p.id for p in projects]
    feature_counts = await project_repo.count_features_by_project(db, ids)
    follower_counts = await project_repo.count_followers_by_project(db, ids)
    member_counts = await project_repo.count_members_by_project(db, ids)
    return [
        ProjectSummary.model_validate(p).model_copy(
            update={
                "feature_count": feature_counts.get(p.id, 0),
                "follower_count": follower_counts.get(p.id, 0),
                "member_count": member_counts.get(p.id, 0),
            }
        )
        for p in projects
    ]


async def global_search(
    db: AsyncSession,
    *,
    user: User,
    q: Optional[str],
    type: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[FeatureStatus] = None,
    priority: Optional[FeaturePriority] = None,
    page: int = 1,
    limit: int = 20,
) -> Dict[str, Any]:
    """
    Поиск по проектам и фичам, видимым пользователю.
    Без фильтра type лимит делится между проектами и фичами поровну.
    """
    q = (q or "").strip()
    if len(q) < MIN_QUERY_LENGTH:
        raise ValidationError("Search query must be at least 2 characters")

    take = limit if type else max(limit // 2, 1)
    skip = (page - 1) * take
    projects: List[ProjectSummary] = []
    features: List[FeatureSearchItem] = []
    total = 0

    if not type or type == "projects":
        found, count = await search_repo.search_projects(
            db, user.id, q=q, category=category, skip=skip, limit=take
        )
        projects = await summarize_projects(db, found)
        total += count

    if not type or type == "features":
        found, count = await search_repo.search_features(
            db, user.id, q=q, status=status, priority=priority, skip=skip, limit=take
        )
        features = [FeatureSearchItem.model_validate(f) for f in found]
        total += count

    return {"projects": projects, "features": features, "pagination": paginate(page, limit, total)}


async def search_projects(
    db: AsyncSession,
    *,
    user: User,
    q: Optional[str] = None,
    category: Optional[str] = None,
    visibility: Optional[ProjectVisibility] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 20,
) -> Dict[str, Any]:
    found, total = await search_repo.search_projects(
        db,
        user.id,
        q=q,
        category=category,
        visibility=visibility,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return {"projects": await summarize_projects(db, found), "pagination": paginate(page, limit, total)}


async def search_features(
    db: AsyncSession,
    *,
    user: User,
    q: Optional[str] = None,
    status: Optional[FeatureStatus] = None,
    priority: Optional[FeaturePriority] = None,
    tags: Optional[List[str]] = None,
    project_id: Optional[int] = None,
    sort_by: str = "vote_count",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 20,
) -> Dict[str, Any]:
    found, total = await search_repo.search_features(
        db,
        user.id,
        q=q,
        status=status,
        priority=priority,
        tags=tags,
        project_id=project_id,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return {
        "features": [FeatureSearchItem.model_validate(f) for f in found],
        "pagination": paginate(page, limit, total),
    }


async def search_public_projects(
    db: AsyncSession,
    *,
    q: Optional[str] = None,
    category: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 50,
) -> Dict[str, Any]:
    """Публичный каталог проектов, результат кэшируется на 5 минут"""
    cache_key = f"search:public:{q or ''}:{category or ''}:{sort_by}:{sort_order}:{page}:{limit}"
    cached = await cache.get_cache(cache_key)
    if cached:
        return cached

    rows, total = await search_repo.search_public_projects(
        db,
        q=q,
        category=category,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=(page - 1) * limit,
        limit=limit,
    )
    projects = [
        PublicProject(
            id=row["project"].id,
            title=row["project"].title,
            slug=row["project"].slug,
            description=row["project"].description,
            category=row["project"].category,
            logo_url=row["project"].logo_url,
            owner=UserBrief.model_validate(row["project"].owner),
            created_at=row["project"].created_at,
            total_votes=row["total_votes"],
            follower_count=row["follower_count"],
            feature_count=row["feature_count"],
            progress=row["progress"],
        )
        for row in rows
    ]
    data = {
        "projects": [p.model_dump(mode="json") for p in projects],
        "pagination": paginate(page, limit, total).model_dump(),
    }

    await cache.set_cache(cache_key, data, expires=PUBLIC_SEARCH_TTL)
    return data
