import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.project as project_repo
from roadmap.core.exceptions import ConflictError, NotFoundError
from roadmap.models.notification import ActivityAction
from roadmap.models.project import Follower, Project
from roadmap.models.user import User
from roadmap.services import access
from roadmap.services.activity import log_activity

logger = logging.getLogger(__name__)


async def follow(db: AsyncSession, *, project_id: int, user: User) -> int:
    """Подписывает пользователя на проект, возвращает новое число подписчиков"""
    await access.get_visible_project(db, project_id, user)
    if await project_repo.get_follower(db, project_id, user.id):
        raise ConflictError("Already following this project")

    try:
        await project_repo.create_follower_in_db(db, Follower(project_id=project_id, user_id=user.id))
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Already following this project")

    count = await project_repo.count_followers(db, project_id)
    await log_activity(db, ActivityAction.PROJECT_FOLLOWED, user.id, project_id, {"follower_count": count})
    return count


async def unfollow(db: AsyncSession, *, project_id: int, user: User) -> int:
    await access.get_visible_project(db, project_id, user)
    if not await project_repo.delete_follower_from_db(db, project_id, user.id):
        raise NotFoundError("Not following this project")

    count = await project_repo.count_followers(db, project_id)
    await log_activity(db, ActivityAction.PROJECT_UNFOLLOWED, user.id, project_id, {"follower_count": count})
    return count


async def get_followers(db: AsyncSession, *, project_id: int, user: Optional[User]) -> List[Follower]:
    await access.get_visible_project(db, project_id, user)
    return await project_repo.get_followers(db, project_id)


async def get_followed_projects(db: AsyncSession, *, user: User) -> List[Project]:
    return await project_repo.get_followed_projects(db, user.id)
