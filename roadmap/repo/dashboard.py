from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from roadmap.models.feature import Feature, Vote, Comment
from roadmap.models.notification import ActivityLog
from roadmap.models.project import Follower


async def get_user_features(db: AsyncSession, user_id: int) -> List[Feature]:
    result = await db.execute(select(Feature).where(Feature.author_id == user_id))
    return result.scalars().all()


async def get_project_features(db: AsyncSession, project_ids: List[int]) -> List[Feature]:
    if not project_ids:
        return []
    result = await db.execute(select(Feature).where(Feature.project_id.in_(project_ids)))
    return result.scalars().all()


async def count_user_votes(db: AsyncSession, user_id: int, since: Optional[datetime] = None) -> int:
    query = select(func.count(Vote.id)).where(Vote.user_id == user_id)
    if since is not None:
        query = query.where(Vote.created_at >= since)
    return (await db.execute(query)).scalar_one()


async def count_user_features(db: AsyncSession, user_id: int, since: Optional[datetime] = None) -> int:
    query = select(func.count(Feature.id)).where(Feature.author_id == user_id)
    if since is not None:
        query = query.where(Feature.created_at >= since)
    return (await db.execute(query)).scalar_one()


async def count_user_comments(db: AsyncSession, user_id: int, since: Optional[datetime] = None) -> int:
    query = select(func.count(Comment.id)).where(Comment.author_id == user_id)
    if since is not None:
        query = query.where(Comment.created_at >= since)
    return (await db.execute(query)).scalar_one()


async def count_user_follows(db: AsyncSession, user_id: int, since: Optional[datetime] = None) -> int:
    query = select(func.count(Follower.id)).where(Follower.user_id == user_id)
    if since is not None:
        query = query.where(Follower.created_at >= since)
    return (await db.execute(query)).scalar_one()


async def get_recent_activity(
    db: AsyncSession, user_id: int, project_ids: List[int], since: Optional[datetime] = None, limit: int = 15
) -> List[ActivityLog]:
    """Действия пользователя и действия в его проектах, новые первыми"""
    condition = ActivityLog.user_id == user_id
    if project_ids:
        condition = or_(condition, ActivityLog.project_id.in_(project_ids))
    query = select(ActivityLog).where(condition)
    if since is not None:
        query = query.where(ActivityLog.created_at >= since)
    result = await db.execute(query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit))
    return result.scalars().all()


async def get_activity_dates(
    db: AsyncSession, user_id: int, project_ids: List[int], since: datetime
) -> List[datetime]:
    condition = ActivityLog.user_id == user_id
    if project_ids:
        condition = or_(condition, ActivityLog.project_id.in_(project_ids))
    result = await db.execute(select(ActivityLog.created_at).where(condition, ActivityLog.created_at >= since))
    return list(result.scalars().all())


async def get_feature_dates(db: AsyncSession, project_ids: List[int], since: datetime) -> List[datetime]:
    if not project_ids:
        return []
    result = await db.execute(
        select(Feature.created_at).where(Feature.project_id.in_(project_ids), Feature.created_at >= since)
    )
    return list(result.scalars().all())
