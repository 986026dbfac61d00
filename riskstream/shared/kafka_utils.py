"""Kafka producer helpers and the high-risk alert forwarder."""

import asyncio
import json

import structlog
from aiokafka import AIOKafkaProducer

from riskstream.domains.risk.models import FraudAlert
from riskstream.domains.risk.pubsub import TOPIC_HIGH_RISK, Broker, Subscription

logger = structlog.get_logger()


async def create_producer(bootstrap_servers: str) -> AIOKafkaProducer:
    """Create and start a Kafka producer."""
    producer = AIOKafkaProducer(
        bootstrap_servers=bootstrap_servers,
        value_serializer=lambda v: json.dumps(v, default=str).encode("utf-8"),
    )
    await producer.start()
    logger.info("kafka_producer_started", bootstrap_servers=bootstrap_servers)
    return producer


async def publish_alert(alert: FraudAlert, producer: AIOKafkaProducer, topic: str) -> None:
    """Publish one alert, keyed by user id so a user's alerts share a partition."""
    try:
        await producer.send_and_wait(
            topic,
            value=alert.model_dump(mode="json"),
            key=alert.user_id.encode("utf-8"),
        )
        logger.info("alert_published_to_kafka", alert_id=alert.alert_id, topic=topic)
    except Exception:
        logger.exception("alert_publish_failed", alert_id=alert.alert_id, topic=topic)


class AlertForwarder:
    """Relays every ``alerts.high-risk`` message from the broker to Kafka."""

    def __init__(self, broker: Broker, producer: AIOKafkaProducer, topic: str) -> None:
        self._broker = broker
        self._producer = producer
        self._topic = topic
        self._subscription: Subscription | None = None
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        self._subscription = self._broker.subscribe(TOPIC_HIGH_RISK)
        self._task = asyncio.create_task(self._run(self._subscription))
        logger.info("alert_forwarder_started", topic=self._topic)

    async def _run(self, subscription: Subscription) -> None:
        while True:
            _, alert = await subscription.get()
            await publish_alert(alert, self._producer, self._topic)

    async def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        logger.info("alert_forwarder_stopped", topic=self._topic)
