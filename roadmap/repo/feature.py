from typing import List, Optional

from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from roadmap.models.feature import Feature, Vote, Comment


async def get_feature_by_id(db: AsyncSession, id: int) -> Optional[Feature]:
    """Получает фичу по идентификатору"""
    result = await db.execute(select(Feature).where(Feature.id == id))
    return result.scalars().first()


async def get_features_by_project(db: AsyncSession, project_id: int) -> List[Feature]:
    """Фичи проекта, самые популярные первыми"""
    result = await db.execute(
        select(Feature)
        .where(Feature.project_id == project_id)
        .order_by(Feature.vote_count.desc(), Feature.created_at.desc(), Feature.id.desc())
    )
    return result.scalars().all()


async def create_feature_in_db(db: AsyncSession, feature: Feature) -> None:
    db.add(feature)
    await db.commit()
    await db.refresh(feature)


async def update_feature_in_db(db: AsyncSession, feature: Feature) -> None:
    db.add(feature)
    await db.commit()
    await db.refresh(feature)


async def delete_feature_from_db(db: AsyncSession, id: int) -> bool:
    """Удаляет фичу, голоса и комментарии удаляются каскадом"""
    result = await db.execute(delete(Feature).where(Feature.id == id))
    await db.commit()
    return result.rowcount > 0


async def count_comments(db: AsyncSession, feature_id: int) -> int:
    result = await db.execute(select(func.count(Comment.id)).where(Comment.feature_id == feature_id))
    return result.scalar_one()


# Голоса
async def get_vote(db: AsyncSession, feature_id: int, user_id: int) -> Optional[Vote]:
    result = await db.execute(select(Vote).where(Vote.feature_id == feature_id, Vote.user_id == user_id))
    return result.scalars().first()


async def get_votes_by_feature(db: AsyncSession, feature_id: int) -> List[Vote]:
    result = await db.execute(select(Vote).where(Vote.feature_id == feature_id).order_by(Vote.created_at))
    return result.scalars().all()


async def get_votes_by_user(db: AsyncSession, user_id: int) -> List[Vote]:
    result = await db.execute(
        select(Vote).where(Vote.user_id == user_id).order_by(Vote.created_at.desc(), Vote.id.desc())
    )
    return result.scalars().all()


async def add_vote(db: AsyncSession, vote: Vote) -> None:
    """Без коммита, вызывается внутри транзакции голосования"""
    db.add(vote)
    await db.flush()


async def delete_vote(db: AsyncSession, vote_id: int) -> bool:
    """Без коммита, вызывается внутри транзакции голосования"""
    result = await db.execute(delete(Vote).where(Vote.id == vote_id))
    return result.rowcount > 0


async def recalculate_vote_count(db: AsyncSession, feature_id: int) -> int:
    """
    Пересчитывает vote_count как сумму всех голосов фичи.
    Без коммита, вызывается внутри транзакции голосования.
    """
    total = (
        await db.execute(select(func.coalesce(func.sum(Vote.value), 0)).where(Vote.feature_id == feature_id))
    ).scalar_one()
    await db.execute(
        update(Feature)
        .where(Feature.id == feature_id)
        .values(vote_count=total)
        .execution_options(synchronize_session=False)
    )
    return int(total)
