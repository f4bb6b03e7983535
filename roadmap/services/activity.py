import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.notification as notification_repo
import roadmap.repo.project as project_repo
from roadmap.db.session import side_session
from roadmap.models.notification import ActivityLog, ActivityAction
from roadmap.models.user import User
from roadmap.services import access

logger = logging.getLogger(__name__)


async def log_activity(
    db: AsyncSession,
    action: ActivityAction,
    user_id: int,
    project_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Пишет запись в журнал активности.
    Запись идет в отдельной сессии: ошибка логируется и не прерывает основную операцию.
    """
    try:
        async with side_session(db) as side:
            await notification_repo.create_activity_in_db(
                side,
                ActivityLog(action=action.value, user_id=user_id, project_id=project_id, meta=metadata or {}),
            )
    except Exception:
        logger.exception(f"Failed to log activity {action.value} for user {user_id}")


async def get_feed_project_ids(db: AsyncSession, user_id: int) -> List[int]:
    """Проекты, в которых пользователь владелец или участник"""
    projects = await project_repo.get_projects_for_user(db, user_id)
    return [p.id for p in projects]


async def get_user_activity(
    db: AsyncSession, *, user: User, page: int = 1, limit: int = 20
) -> Tuple[List[ActivityLog], int]:
    project_ids = await get_feed_project_ids(db, user.id)
    return await notification_repo.get_user_feed(db, user.id, project_ids, skip=(page - 1) * limit, limit=limit)


async def get_project_activity(
    db: AsyncSession, *, project_id: int, user: Optional[User], page: int = 1, limit: int = 20
) -> Tuple[List[ActivityLog], int]:
    await access.get_visible_project(db, project_id, user)
    return await notification_repo.get_project_activity(db, project_id, skip=(page - 1) * limit, limit=limit)
