from typing import Dict, List, Optional, Set

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from roadmap.models.discussion import Discussion, DiscussionLike, DiscussionReply, DiscussionReplyLike


async def get_discussion_by_id(db: AsyncSession, id: int) -> Optional[Discussion]:
    """Получает обсуждение по идентификатору"""
    result = await db.execute(select(Discussion).where(Discussion.id == id))
    return result.scalars().first()


async def get_discussions_by_project(db: AsyncSession, project_id: int) -> List[Discussion]:
    """Обсуждения проекта, новые первыми"""
    result = await db.execute(
        select(Discussion)
        .where(Discussion.project_id == project_id)
        .order_by(Discussion.created_at.desc(), Discussion.id.desc())
    )
    return result.scalars().all()


async def create_discussion_in_db(db: AsyncSession, discussion: Discussion) -> None:
    db.add(discussion)
    await db.commit()
    await db.refresh(discussion)


async def update_discussion_in_db(db: AsyncSession, discussion: Discussion) -> None:
    db.add(discussion)
    await db.commit()
    await db.refresh(discussion)


async def delete_discussion_from_db(db: AsyncSession, id: int) -> bool:
    """Удаляет обсуждение вместе со всеми ответами и лайками"""
    result = await db.execute(delete(Discussion).where(Discussion.id == id))
    await db.commit()
    return result.rowcount > 0


async def count_discussion_likes(db: AsyncSession, discussion_ids: List[int]) -> Dict[int, int]:
    if not discussion_ids:
        return {}
    result = await db.execute(
        select(DiscussionLike.discussion_id, func.count(DiscussionLike.id))
        .where(DiscussionLike.discussion_id.in_(discussion_ids))
        .group_by(DiscussionLike.discussion_id)
    )
    return dict(result.all())


async def count_replies(db: AsyncSession, discussion_ids: List[int]) -> Dict[int, int]:
    if not discussion_ids:
        return {}
    result = await db.execute(
        select(DiscussionReply.discussion_id, func.count(DiscussionReply.id))
        .where(DiscussionReply.discussion_id.in_(discussion_ids))
        .group_by(DiscussionReply.discussion_id)
    )
    return dict(result.all())


async def get_liked_discussion_ids(db: AsyncSession, user_id: int, discussion_ids: List[int]) -> Set[int]:
    if not discussion_ids:
        return set()
    result = await db.execute(
        select(DiscussionLike.discussion_id).where(
            DiscussionLike.user_id == user_id, DiscussionLike.discussion_id.in_(discussion_ids)
        )
    )
    return set(result.scalars().all())


async def get_discussion_like(db: AsyncSession, discussion_id: int, user_id: int) -> Optional[DiscussionLike]:
    result = await db.execute(
        select(DiscussionLike).where(DiscussionLike.discussion_id == discussion_id, DiscussionLike.user_id == user_id)
    )
    return result.scalars().first()


async def create_discussion_like_in_db(db: AsyncSession, like: DiscussionLike) -> None:
    db.add(like)
    await db.commit()


async def delete_discussion_like_from_db(db: AsyncSession, discussion_id: int, user_id: int) -> bool:
    result = await db.execute(
        delete(DiscussionLike).where(DiscussionLike.discussion_id == discussion_id, DiscussionLike.user_id == user_id)
    )
    await db.commit()
    return result.rowcount > 0


# Ответы
async def get_reply_by_id(db: AsyncSession, id: int) -> Optional[DiscussionReply]:
    result = await db.execute(select(DiscussionReply).where(DiscussionReply.id == id))
    return result.scalars().first()


async def get_replies_by_discussion(db: AsyncSession, discussion_id: int) -> List[DiscussionReply]:
    """Все ответы обсуждения одним запросом, старые первыми"""
    result = await db.execute(
        select(DiscussionReply)
        .where(DiscussionReply.discussion_id == discussion_id)
        .order_by(DiscussionReply.created_at, DiscussionReply.id)
    )
    return result.scalars().all()


async def create_reply_in_db(db: AsyncSession, reply: DiscussionReply) -> None:
    db.add(reply)
    await db.commit()
    await db.refresh(reply)


async def update_reply_in_db(db: AsyncSession, reply: DiscussionReply) -> None:
    db.add(reply)
    await db.commit()
    await db.refresh(reply)


async def delete_reply_from_db(db: AsyncSession, id: int) -> bool:
    """Удаляет ответ вместе со всей веткой под ним"""
    result = await db.execute(delete(DiscussionReply).where(DiscussionReply.id == id))
    await db.commit()
    return result.rowcount > 0


async def count_reply_likes(db: AsyncSession, reply_ids: List[int]) -> Dict[int, int]:
    if not reply_ids:
        return {}
    result = await db.execute(
        select(DiscussionReplyLike.reply_id, func.count(DiscussionReplyLike.id))
        .where(DiscussionReplyLike.reply_id.in_(reply_ids))
        .group_by(DiscussionReplyLike.reply_id)
    )
    return dict(result.all())


async def get_liked_reply_ids(db: AsyncSession, user_id: int, reply_ids: List[int]) -> Set[int]:
    if not reply_ids:
        return set()
    result = await db.execute(
        select(DiscussionReplyLike.reply_id).where(
            DiscussionReplyLike.user_id == user_id, DiscussionReplyLike.reply_id.in_(reply_ids)
        )
    )
    return set(result.scalars().all())


async def get_reply_like(db: AsyncSession, reply_id: int, user_id: int) -> Optional[DiscussionReplyLike]:
    result = await db.execute(
        select(DiscussionReplyLike).where(
            DiscussionReplyLike.reply_id == reply_id, DiscussionReplyLike.user_id == user_id
        )
    )
    return result.scalars().first()


async def create_reply_like_in_db(db: AsyncSession, like: DiscussionReplyLike) -> None:
    db.add(like)
    await db.commit()


async def delete_reply_like_from_db(db: AsyncSession, reply_id: int, user_id: int) -> bool:
    result = await db.execute(
        delete(DiscussionReplyLike).where(DiscussionReplyLike.reply_id == reply_id, DiscussionReplyLike.user_id == user_id)
    )
    await db.commit()
    return result.rowcount > 0
