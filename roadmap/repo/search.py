from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import String, and_, case, cast, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from roadmap.models.feature import Feature, FeatureStatus, FeaturePriority
from roadmap.models.project import Project, ProjectMember, ProjectVisibility, Follower

PROJECT_SORT_FIELDS = {
    "created_at": Project.created_at,
    "updated_at": Project.updated_at,
    "title": Project.title,
    "progress": Project.progress,
}

FEATURE_SORT_FIELDS = {
    "vote_count": Feature.vote_count,
    "created_at": Feature.created_at,
    "updated_at": Feature.updated_at,
    "title": Feature.title,
    "progress": Feature.progress,
}


def visible_to(user_id: int):
    """Публичный проект, собственный или с членством пользователя"""
    member_projects = select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)
    return or_(
        Project.visibility == ProjectVisibility.PUBLIC,
        Project.owner_id == user_id,
        Project.id.in_(member_projects),
    )


def project_text_match(q: str):
    return or_(
        Project.title.icontains(q, autoescape=True),
        Project.description.icontains(q, autoescape=True),
        Project.category.icontains(q, autoescape=True),
    )


def feature_text_match(q: str):
    # Теги хранятся JSON-массивом строк, ищем точное совпадение элемента
    return or_(
        Feature.title.icontains(q, autoescape=True),
        Feature.description.icontains(q, autoescape=True),
        cast(Feature.tags, String).icontains(f'"{q}"', autoescape=True),
    )


def _order(column, sort_order: str):
    return column.asc() if sort_order == "asc" else column.desc()


async def search_projects(
    db: AsyncSession,
    user_id: int,
    q: Optional[str] = None,
    category: Optional[str] = None,
    visibility: Optional[ProjectVisibility] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Project], int]:
    """Текстовый поиск И фильтр видимости, без подмены одного условия другим"""
    conditions = [visible_to(user_id)]
    if q:
        conditions.append(project_text_match(q))
    if category:
        conditions.append(Project.category == category)
    if visibility:
        conditions.append(Project.visibility == visibility)

    where = and_(*conditions)
    total = (await db.execute(select(func.count(Project.id)).where(where))).scalar_one()

    column = PROJECT_SORT_FIELDS.get(sort_by, Project.created_at)
    result = await db.execute(
        select(Project).where(where).order_by(_order(column, sort_order), Project.id.desc()).offset(skip).limit(limit)
    )
    return result.scalars().all(), total


async def search_features(
    db: AsyncSession,
    user_id: int,
    q: Optional[str] = None,
    status: Optional[FeatureStatus] = None,
    priority: Optional[FeaturePriority] = None,
    tags: Optional[List[str]] = None,
    project_id: Optional[int] = None,
    sort_by: str = "vote_count",
    sort_order: str = "desc",
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Feature], int]:
    conditions = [visible_to(user_id)]
    if q:
        conditions.append(feature_text_match(q))
    if status:
        conditions.append(Feature.status == status)
    if priority:
        conditions.append(Feature.priority == priority)
    if tags:
        conditions.append(or_(*[cast(Feature.tags, String).contains(f'"{tag}"', autoescape=True) for tag in tags]))
    if project_id:
        conditions.append(Feature.project_id == project_id)

    where = and_(*conditions)
    total = (
        await db.execute(select(func.count(Feature.id)).join(Project, Project.id == Feature.project_id).where(where))
    ).scalar_one()

    column = FEATURE_SORT_FIELDS.get(sort_by, Feature.vote_count)
    result = await db.execute(
        select(Feature)
        .join(Project, Project.id == Feature.project_id)
        .where(where)
        .options(selectinload(Feature.project))
        .order_by(_order(column, sort_order), Feature.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), total


async def search_public_projects(
    db: AsyncSession,
    q: Optional[str] = None,
    category: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    skip: int = 0,
    limit: int = 50,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Публичные проекты с суммой голосов, числом подписчиков и прогрессом
    по завершенным фичам. Сортировка и пагинация выполняются в SQL.
    """
    feature_stats = (
        select(
            Feature.project_id.label("project_id"),
            func.coalesce(func.sum(Feature.vote_count), 0).label("total_votes"),
            func.count(Feature.id).label("feature_count"),
            func.sum(case((Feature.status == FeatureStatus.COMPLETED, 1), else_=0)).label("completed"),
        )
        .group_by(Feature.project_id)
        .subquery()
    )
    follower_stats = (
        select(Follower.project_id.label("project_id"), func.count(Follower.id).label("follower_count"))
        .group_by(Follower.project_id)
        .subquery()
    )

    total_votes = func.coalesce(feature_stats.c.total_votes, 0)
    feature_count = func.coalesce(feature_stats.c.feature_count, 0)
    completed = func.coalesce(feature_stats.c.completed, 0)
    follower_count = func.coalesce(follower_stats.c.follower_count, 0)
    progress = case((feature_count > 0, func.round(completed * 100.0 / feature_count)), else_=0)

    conditions = [Project.visibility == ProjectVisibility.PUBLIC]
    if q:
        conditions.append(project_text_match(q))
    if category and category != "All":
        conditions.append(Project.category == category)
    where = and_(*conditions)

    total = (await db.execute(select(func.count(Project.id)).where(where))).scalar_one()

    sort_columns = {
        "votes": total_votes,
        "followers": follower_count,
        "progress": progress,
        "created_at": Project.created_at,
    }
    column = sort_columns.get(sort_by, Project.created_at)

    result = await db.execute(
        select(
            Project,
            total_votes.label("total_votes"),
            follower_count.label("follower_count"),
            feature_count.label("feature_count"),
            progress.label("completion"),
        )
        .outerjoin(feature_stats, feature_stats.c.project_id == Project.id)
        .outerjoin(follower_stats, follower_stats.c.project_id == Project.id)
        .where(where)
        .order_by(_order(column, sort_order), Project.id.desc())
        .offset(skip)
        .limit(limit)
    )

    rows = []
    for project, votes, followers, features, completion in result.all():
        rows.append(
            {
                "project": project,
                "total_votes": int(votes or 0),
                "follower_count": int(followers or 0),
                "feature_count": int(features or 0),
                "progress": int(completion or 0),
            }
        )
    return rows, total
