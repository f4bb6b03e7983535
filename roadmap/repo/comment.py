from typing import Dict, List, Optional, Set

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from roadmap.models.feature import Comment, CommentLike


async def get_comment_by_id(db: AsyncSession, id: int) -> Optional[Comment]:
    """Получает комментарий по идентификатору"""
    result = await db.execute(select(Comment).where(Comment.id == id))
    return result.scalars().first()


async def get_comments_by_feature(db: AsyncSession, feature_id: int) -> List[Comment]:
    """Все комментарии фичи, старые первыми"""
    result = await db.execute(
        select(Comment).where(Comment.feature_id == feature_id).order_by(Comment.created_at, Comment.id)
    )
    return result.scalars().all()


async def create_comment_in_db(db: AsyncSession, comment: Comment) -> None:
    db.add(comment)
    await db.commit()
    await db.refresh(comment)


async def update_comment_in_db(db: AsyncSession, comment: Comment) -> None:
    db.add(comment)
    await db.commit()
    await db.refresh(comment)


async def delete_comment_from_db(db: AsyncSession, id: int) -> bool:
    """Удаляет комментарий вместе с ответами"""
    result = await db.execute(delete(Comment).where(Comment.id == id))
    await db.commit()
    return result.rowcount > 0


# Лайки
async def count_likes(db: AsyncSession, comment_ids: List[int]) -> Dict[int, int]:
    if not comment_ids:
        return {}
    result = await db.execute(
        select(CommentLike.comment_id, func.count(CommentLike.id))
        .where(CommentLike.comment_id.in_(comment_ids))
        .group_by(CommentLike.comment_id)
    )
    return dict(result.all())


async def get_liked_ids(db: AsyncSession, user_id: int, comment_ids: List[int]) -> Set[int]:
    if not comment_ids:
        return set()
    result = await db.execute(
        select(CommentLike.comment_id).where(CommentLike.user_id == user_id, CommentLike.comment_id.in_(comment_ids))
    )
    return set(result.scalars().all())


async def get_like(db: AsyncSession, comment_id: int, user_id: int) -> Optional[CommentLike]:
    result = await db.execute(
        select(CommentLike).where(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id)
    )
    return result.scalars().first()


async def create_like_in_db(db: AsyncSession, like: CommentLike) -> None:
    db.add(like)
    await db.commit()


async def delete_like_from_db(db: AsyncSession, comment_id: int, user_id: int) -> bool:
    result = await db.execute(
        delete(CommentLike).where(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id)
    )
    await db.commit()
    return result.rowcount > 0
