import json
import logging
from typing import Any, Dict, Optional

from aiokafka import AIOKafkaProducer
from aiokafka.admin import AIOKafkaAdminClient, NewTopic

from roadmap.core.config import settings

logger = logging.getLogger(__name__)

ROADMAP_EVENTS_TOPIC = "roadmap_events"
KAFKA_TOPICS = [ROADMAP_EVENTS_TOPIC]

_producer: Optional[AIOKafkaProducer] = None


def _serialize(value: Dict[str, Any]) -> bytes:
    # datetime и enum в данных событий приводятся к строке
    return json.dumps(value, default=str).encode("utf-8")


async def create_topics():
    """Создает недостающие топики при старте приложения"""
    admin_client = AIOKafkaAdminClient(bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS)
    try:
        await admin_client.start()
        existing = set(await admin_client.list_topics())
        missing = [
            NewTopic(name=name, num_partitions=1, replication_factor=1) for name in KAFKA_TOPICS if name not in existing
        ]
        if not missing:
            logger.info("Kafka topics are up to date")
            return
        await admin_client.create_topics(missing)
        logger.info(f"Created Kafka topics: {[t.name for t in missing]}")
    except Exception as e:
        logger.error(f"Failed to create Kafka topics: {e}")
    finally:
        await admin_client.close()


async def get_kafka_producer() -> AIOKafkaProducer:
    """Ленивая инициализация общего продюсера"""
    global _producer
    if _producer is None:
        _producer = AIOKafkaProducer(
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            value_serializer=_serialize,
        )
        await _producer.start()
    return _producer


async def close_kafka_producer():
    global _producer
    if _producer is not None:
        await _producer.stop()
        _producer = None


async def send_event(event_type: str, data: Dict[str, Any], topic: str = ROADMAP_EVENTS_TOPIC):
    """
    Публикует событие {"event_type", "data"} в Kafka.
    Недоступный брокер не ломает запрос: ошибка пишется в лог.
    """
    try:
        kafka_producer = await get_kafka_producer()
        await kafka_producer.send_and_wait(topic, {"event_type": event_type, "data": data})
    except Exception as e:
        logger.error(f"Failed to send Kafka event {event_type}: {e}")
        return
    logger.info(f"Sent {event_type} to {topic}")
