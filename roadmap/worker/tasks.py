import asyncio
import logging

from sqlalchemy import delete, or_

from roadmap.core.config import settings
from roadmap.db.session import Database
from roadmap.models.project import ProjectInvite
from roadmap.utils.dates import utc_now
from roadmap.utils.notifications import send_email
from roadmap.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task
def send_notification(user_email: str, subject: str, message: str):
    """
    Отправляет email-уведомление пользователю
    """
    send_email(user_email, subject, message)
    return {"status": "sent", "to": user_email}


async def delete_expired_invites(database: Database) -> int:
    """Удаляет просроченные и уже принятые приглашения"""
    async with database.session() as session:
        result = await session.execute(
            delete(ProjectInvite).where(
                or_(ProjectInvite.expires_at < utc_now(), ProjectInvite.accepted.is_(True))
            )
        )
        await session.commit()
        return result.rowcount


@celery_app.task
def cleanup_expired_invites():
    """
    Периодически чистит таблицу приглашений
    """
    logger.info("Cleaning up expired invites...")

    async def _cleanup():
        database = Database(settings.database_url)
        try:
            return await delete_expired_invites(database)
        finally:
            await database.dispose()

    removed = asyncio.run(_cleanup())
    logger.info(f"Removed {removed} invites")
    return {"status": "Invite cleanup completed", "removed": removed}
