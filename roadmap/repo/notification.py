from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from roadmap.models.notification import Notification, ActivityLog


async def create_notifications_in_db(db: AsyncSession, notifications: List[Notification]) -> None:
    """Создает пачку уведомлений одним коммитом"""
    if not notifications:
        return
    db.add_all(notifications)
    await db.commit()


async def get_notifications(
    db: AsyncSession, user_id: int, skip: int = 0, limit: int = 20, unread_only: bool = False
) -> Tuple[List[Notification], int]:
    query = select(Notification).where(Notification.user_id == user_id)
    count_query = select(func.count(Notification.id)).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.read.is_(False))
        count_query = count_query.where(Notification.read.is_(False))

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(skip).limit(limit)
    )
    return result.scalars().all(), total


async def count_unread(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(Notification.user_id == user_id, Notification.read.is_(False))
    )
    return result.scalar_one()


async def get_notification(db: AsyncSession, id: int, user_id: int) -> Optional[Notification]:
    """Уведомление принадлежит пользователю, чужие не видны"""
    result = await db.execute(
        select(Notification).where(Notification.id == id, Notification.user_id == user_id)
    )
    return result.scalars().first()


async def update_notification_in_db(db: AsyncSession, notification: Notification) -> None:
    db.add(notification)
    await db.commit()
    await db.refresh(notification)


async def mark_all_read(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def delete_notification_from_db(db: AsyncSession, id: int, user_id: int) -> bool:
    result = await db.execute(
        delete(Notification).where(Notification.id == id, Notification.user_id == user_id)
    )
    await db.commit()
    return result.rowcount > 0


# Журнал активности
async def create_activity_in_db(db: AsyncSession, activity: ActivityLog) -> None:
    db.add(activity)
    await db.commit()


async def get_user_feed(
    db: AsyncSession, user_id: int, project_ids: List[int], skip: int = 0, limit: int = 20
) -> Tuple[List[ActivityLog], int]:
    """Действия пользователя и все действия в проектах, где он владелец или участник"""
    condition = ActivityLog.user_id == user_id
    if project_ids:
        condition = or_(condition, ActivityLog.project_id.in_(project_ids))

    total = (await db.execute(select(func.count(ActivityLog.id)).where(condition))).scalar_one()
    result = await db.execute(
        select(ActivityLog)
        .where(condition)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), total


async def get_project_activity(
    db: AsyncSession, project_id: int, skip: int = 0, limit: int = 20
) -> Tuple[List[ActivityLog], int]:
    total = (
        await db.execute(select(func.count(ActivityLog.id)).where(ActivityLog.project_id == project_id))
    ).scalar_one()
    result = await db.execute(
        select(ActivityLog)
        .where(ActivityLog.project_id == project_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), total


async def get_activity_since(
    db: AsyncSession, project_ids: List[int], user_id: int, since: Optional[datetime] = None
) -> List[ActivityLog]:
    condition = ActivityLog.user_id == user_id
    if project_ids:
        condition = or_(condition, ActivityLog.project_id.in_(project_ids))
    query = select(ActivityLog).where(condition)
    if since is not None:
        query = query.where(ActivityLog.created_at >= since)
    result = await db.execute(query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()))
    return result.scalars().all()
