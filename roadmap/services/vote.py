import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.feature as feature_repo
from roadmap.core.exceptions import NotFoundError
from roadmap.db.session import transaction
from roadmap.models.feature import Vote
from roadmap.models.user import User
from roadmap.services.feature import get_visible_feature

logger = logging.getLogger(__name__)


async def _write_vote(db: AsyncSession, feature_id: int, user_id: int, value: int) -> Tuple[Vote, int]:
    async with transaction(db):
        vote = await feature_repo.get_vote(db, feature_id, user_id)
        if vote:
            vote.value = value
        else:
            vote = Vote(feature_id=feature_id, user_id=user_id, value=value)
            await feature_repo.add_vote(db, vote)
        total = await feature_repo.recalculate_vote_count(db, feature_id)
    return vote, total


async def cast_vote(db: AsyncSession, *, feature_id: int, value: int, user: User) -> Tuple[Vote, int]:
    """
    Голос пользователя за фичу: повторный голос перезаписывает значение.
    Запись голоса и пересчет vote_count выполняются в одной транзакции.
    Если параллельный запрос успел вставить такой же голос, запись повторяется как обновление.
    """
    feature, _, _ = await get_visible_feature(db, feature_id, user)
    # После rollback объекты сессии истекают, дальше нужны только идентификаторы
    feature_id, user_id = feature.id, user.id

    try:
        vote, total = await _write_vote(db, feature_id, user_id, value)
    except IntegrityError:
        logger.info(f"Concurrent vote of user {user_id} on feature {feature_id}, retrying as update")
        vote, total = await _write_vote(db, feature_id, user_id, value)

    await db.refresh(vote)
    logger.info(f"User {user_id} voted {value} on feature {feature_id}, total {total}")
    return vote, total


async def remove_vote(db: AsyncSession, *, feature_id: int, user: User) -> int:
    feature, _, _ = await get_visible_feature(db, feature_id, user)

    async with transaction(db):
        vote: Optional[Vote] = await feature_repo.get_vote(db, feature.id, user.id)
        if not vote:
            raise NotFoundError("Vote not found")
        await feature_repo.delete_vote(db, vote.id)
        total = await feature_repo.recalculate_vote_count(db, feature.id)

    return total


async def get_user_votes(db: AsyncSession, *, user: User) -> List[Vote]:
    return await feature_repo.get_votes_by_user(db, user.id)
