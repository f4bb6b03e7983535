from celery import Celery
from celery.schedules import crontab

from roadmap.core.config import settings

REDIS_URL = f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/0"

celery_app = Celery("roadmap_worker", broker=REDIS_URL, backend=REDIS_URL)

# Письма и чистка приглашений идут через отдельную очередь
celery_app.conf.task_routes = {"roadmap.worker.tasks.*": {"queue": "notifications"}}

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
)

celery_app.autodiscover_tasks(["roadmap.worker.tasks"])

celery_app.conf.beat_schedule = {
    "cleanup-expired-invites": {
        "task": "roadmap.worker.tasks.cleanup_expired_invites",
        "schedule": crontab(minute="15"),
    },
}
