import asyncio
import json
import logging
from typing import Any, Dict

from aiokafka import AIOKafkaConsumer

from roadmap.core.config import settings
from roadmap.messaging.producers import ROADMAP_EVENTS_TOPIC
from roadmap.worker.tasks import send_notification

logger = logging.getLogger(__name__)


def handle_event(event: Dict[str, Any]) -> int:
    """
    Превращает событие в email-уведомления через Celery.
    Возвращает количество поставленных в очередь писем.
    """
    event_type = event.get("event_type")
    data = event.get("data") or {}
    queued = 0

    if event_type == "feature_created":
        for email in data.get("notify_emails", []):
            send_notification.delay(
                user_email=email,
                subject=f"New feature in {data['project_title']}: {data['title']}",
                message=f"A new feature '{data['title']}' was added to '{data['project_title']}'.",
            )
            queued += 1

    elif event_type == "feature_status_changed":
        for email in data.get("notify_emails", []):
            send_notification.delay(
                user_email=email,
                subject=f"Feature status updated: {data['title']}",
                message=f"Feature '{data['title']}' in '{data['project_title']}' "
                + f"moved to status '{data['status']}'.",
            )
            queued += 1

    elif event_type == "member_joined":
        if data.get("owner_email"):
            send_notification.delay(
                user_email=data["owner_email"],
                subject=f"New member in {data['project_title']}",
                message=f"{data['user_name']} joined '{data['project_title']}' as {data['role']}.",
            )
            queued += 1

    else:
        logger.warning(f"Unknown event type: {event_type}")

    return queued


async def consume_roadmap_events():
    """
    Потребляет события роадмапов из Kafka и обрабатывает их
    """
    consumer = AIOKafkaConsumer(
        ROADMAP_EVENTS_TOPIC,
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        group_id="roadmap_notifications_group",
        value_deserializer=lambda m: json.loads(m.decode("utf-8")),
    )

    await consumer.start()
    try:
        async for msg in consumer:
            logger.info(f"Received message: {msg.value}")
            handle_event(msg.value)
    finally:
        await consumer.stop()


async def start_consumers():
    """
    Запускает все консьюмеры Kafka
    """
    await asyncio.gather(
        consume_roadmap_events(),
    )
