import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.notification as notification_repo
import roadmap.repo.project as project_repo
import roadmap.repo.user as user_repo
from roadmap.core.exceptions import NotFoundError
from roadmap.db.session import side_session
from roadmap.models.feature import Feature
from roadmap.models.notification import Notification, NotificationType, ActivityAction
from roadmap.models.user import User
from roadmap.services.activity import log_activity
from roadmap.utils.text import parse_mentions

logger = logging.getLogger(__name__)


async def notify_users(
    db: AsyncSession,
    user_ids: Iterable[int],
    type: NotificationType,
    message: str,
    reference_id: Optional[int] = None,
) -> int:
    """
    Создает уведомления для списка пользователей.
    Пишет в отдельной сессии, ошибка только логируется и не затрагивает сессию запроса.
    """
    notifications = [
        Notification(user_id=user_id, type=type.value, message=message, reference_id=reference_id)
        for user_id in dict.fromkeys(user_ids)
    ]
    try:
        async with side_session(db) as side:
            await notification_repo.create_notifications_in_db(side, notifications)
    except Exception:
        logger.exception(f"Failed to create {type.value} notifications")
        return 0
    return len(notifications)


async def notify_new_feature(db: AsyncSession, feature: Feature, author: User) -> int:
    """Подписчики проекта, кроме автора, получают new_feature"""
    try:
        follower_ids = await project_repo.get_follower_user_ids(db, feature.project_id)
    except Exception:
        logger.exception(f"Failed to load followers for feature {feature.id}")
        return 0
    recipients = [user_id for user_id in follower_ids if user_id != author.id]
    return await notify_users(
        db,
        recipients,
        NotificationType.NEW_FEATURE,
        f"{author.name} suggested a new feature: {feature.title}",
        reference_id=feature.id,
    )


async def notify_status_change(db: AsyncSession, feature: Feature, old_status: str, new_status: str) -> int:
    """Все подписчики проекта получают status_update, автор не исключается"""
    try:
        follower_ids = await project_repo.get_follower_user_ids(db, feature.project_id)
    except Exception:
        logger.exception(f"Failed to load followers for feature {feature.id}")
        return 0
    return await notify_users(
        db,
        follower_ids,
        NotificationType.STATUS_UPDATE,
        f'Feature "{feature.title}" changed from {old_status} to {new_status}',
        reference_id=feature.id,
    )


async def notify_mentions(
    db: AsyncSession,
    content: str,
    author: User,
    reference_id: int,
    context: str,
    project_id: Optional[int] = None,
) -> int:
    """Уведомляет упомянутых через @username, кроме самого автора"""
    usernames = parse_mentions(content)
    if not usernames:
        return 0
    try:
        users = await user_repo.get_users_by_usernames(db, usernames)
    except Exception:
        logger.exception("Failed to resolve mentions")
        return 0

    mentioned = [u for u in users if u.id != author.id]
    created = await notify_users(
        db,
        [u.id for u in mentioned],
        NotificationType.MENTION,
        f"{author.name} mentioned you in a {context}",
        reference_id=reference_id,
    )
    for user in mentioned:
        await log_activity(
            db,
            ActivityAction.USER_MENTIONED,
            author.id,
            project_id,
            {"mentioned_user_id": user.id, "context": context, "reference_id": reference_id},
        )
    return created


async def get_notifications(
    db: AsyncSession, *, user: User, page: int = 1, limit: int = 20, unread_only: bool = False
) -> Tuple[List[Notification], int, int]:
    notifications, total = await notification_repo.get_notifications(
        db, user.id, skip=(page - 1) * limit, limit=limit, unread_only=unread_only
    )
    unread = await notification_repo.count_unread(db, user.id)
    return notifications, total, unread


async def mark_as_read(db: AsyncSession, *, id: int, user: User) -> Notification:
    notification = await notification_repo.get_notification(db, id, user.id)
    if not notification:
        raise NotFoundError("Notification not found")
    notification.read = True
    await notification_repo.update_notification_in_db(db, notification)
    return notification


async def mark_all_as_read(db: AsyncSession, *, user: User) -> int:
    return await notification_repo.mark_all_read(db, user.id)


async def delete(db: AsyncSession, *, id: int, user: User) -> None:
    if not await notification_repo.delete_notification_from_db(db, id, user.id):
        raise NotFoundError("Notification not found")
